"""Submission of transcripts to the external assessment service."""

from .engine import AssessmentEngine, AssessmentError, prepare_submission, parse_analysis
from .models import GrammarAnalysis, FeedbackPoint, CEFR_LEVELS

__all__ = [
    "AssessmentEngine",
    "AssessmentError",
    "prepare_submission",
    "parse_analysis",
    "GrammarAnalysis",
    "FeedbackPoint",
    "CEFR_LEVELS",
]
