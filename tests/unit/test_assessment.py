"""Unit tests for transcript assessment."""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, patch

from speak2me.assessment import (
    AssessmentEngine,
    AssessmentError,
    GrammarAnalysis,
    parse_analysis,
    prepare_submission,
)


SAMPLE_RESPONSE = {
    "detectedLevel": "A2",
    "grammarScore": 72,
    "vocabularyScore": 65.6,
    "structureScore": 80,
    "overallScore": 71,
    "feedbackPoints": [
        {"type": "correct", "title": "Verbposition", "description": "Das Verb steht an zweiter Stelle."},
        {"type": "error", "title": "Artikel", "description": "Falscher Artikel.", "example": "die Haus -> das Haus"},
    ],
    "suggestions": ["Mehr Nebensätze verwenden"],
}


@pytest.mark.unit
class TestPrepareSubmission:
    """Test cases for submission validation."""

    def test_valid_submission(self):
        assert prepare_submission("  Ich heiße Peter.  ", "b1") == ("Ich heiße Peter.", "B1")

    def test_empty_text(self):
        with pytest.raises(AssessmentError, match="No text"):
            prepare_submission("   ", "A1")

    def test_text_too_short(self):
        with pytest.raises(AssessmentError, match="too short"):
            prepare_submission("Hallo.", "A1")

    def test_unknown_level(self):
        with pytest.raises(AssessmentError, match="level"):
            prepare_submission("Ich wohne in Berlin.", "D1")


@pytest.mark.unit
class TestParseAnalysis:
    """Test cases for report normalization."""

    def test_camel_case_response(self):
        analysis = parse_analysis(json.dumps(SAMPLE_RESPONSE))

        assert analysis.detected_level == "A2"
        assert analysis.grammar_score == 72
        assert analysis.vocabulary_score == 66
        assert len(analysis.feedback_points) == 2
        assert analysis.feedback_points[1].example == "die Haus -> das Haus"
        assert analysis.suggestions == ["Mehr Nebensätze verwenden"]

    def test_missing_fields_get_defaults(self):
        analysis = parse_analysis("{}")

        assert analysis == GrammarAnalysis()
        assert analysis.detected_level == "A1"
        assert analysis.overall_score == 0
        assert analysis.feedback_points == []

    def test_scores_are_clamped(self):
        analysis = parse_analysis(json.dumps({"grammarScore": 140, "overallScore": -5, "structureScore": "viel"}))

        assert analysis.grammar_score == 100
        assert analysis.overall_score == 0
        assert analysis.structure_score == 0

    def test_unknown_level_falls_back(self):
        assert parse_analysis(json.dumps({"detectedLevel": "B3"})).detected_level == "A1"
        assert parse_analysis(json.dumps({"detectedLevel": " c1 "})).detected_level == "C1"

    def test_null_lists(self):
        analysis = parse_analysis(json.dumps({"feedbackPoints": None, "suggestions": None}))

        assert analysis.feedback_points == []
        assert analysis.suggestions == []

    def test_invalid_json(self):
        with pytest.raises(AssessmentError):
            parse_analysis("not json")

    def test_non_object_json(self):
        with pytest.raises(AssessmentError):
            parse_analysis("[1, 2]")

    def test_invalid_feedback_type(self):
        bad = {"feedbackPoints": [{"type": "praise", "title": "x", "description": "y"}]}

        with pytest.raises(AssessmentError):
            parse_analysis(json.dumps(bad))


@pytest.mark.unit
class TestAssessmentEngine:
    """Test cases for the assessment request flow."""

    def test_analyze_submits_text_as_is(self):
        engine = AssessmentEngine("sk-test")
        text = "Ich heiße Peter. Ich wohne in Berlin."

        with patch.object(engine, "send_prompt",
                          new=AsyncMock(return_value=json.dumps(SAMPLE_RESPONSE))) as send_prompt:
            analysis = asyncio.run(engine.analyze(text, "a2"))

        assert analysis.detected_level == "A2"
        prompt = send_prompt.call_args[0][0]
        assert text in prompt
        assert "A2" in prompt
        assert "German" in send_prompt.call_args.kwargs["system"]

    def test_analyze_rejects_short_text_without_request(self):
        engine = AssessmentEngine("sk-test")

        with patch.object(engine, "send_prompt", new=AsyncMock()) as send_prompt:
            with pytest.raises(AssessmentError):
                asyncio.run(engine.analyze("Hallo", "A1"))

        send_prompt.assert_not_called()

    def test_analyze_propagates_service_failure(self):
        engine = AssessmentEngine("sk-test")

        with patch.object(engine, "send_prompt",
                          new=AsyncMock(side_effect=AssessmentError("Assessment API error: 500"))):
            with pytest.raises(AssessmentError, match="500"):
                asyncio.run(engine.analyze("Ich wohne in Berlin.", "A1"))
