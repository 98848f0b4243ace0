"""Client for the external grammar / CEFR level assessment service."""

import json
import logging
from typing import Tuple

import aiohttp
from pydantic import ValidationError

from .models import CEFR_LEVELS, GrammarAnalysis

logger = logging.getLogger(__name__)

MIN_SUBMISSION_LENGTH = 10

SYSTEM_PROMPT = (
    "You assess {language} learner texts for Goethe certificate preparation. "
    "Rate the text on the CEFR scale and answer only with a JSON object."
)

USER_PROMPT = """Assess this {language} text written or spoken by a learner.

Text: "{text}"
Target CEFR level: {level}

Return a JSON object with these keys:
- "detectedLevel": one of A1, A2, B1, B2, C1, C2
- "grammarScore", "vocabularyScore", "structureScore", "overallScore": integers 0-100
- "feedbackPoints": list of {{"type": "correct"|"warning"|"error", "title": str, "description": str, "example": optional str}}
- "suggestions": list of short improvement suggestions"""


class AssessmentError(Exception):
    """Raised when a transcript cannot be submitted or the report is unusable."""


def prepare_submission(text: str, target_level: str = "A1") -> Tuple[str, str]:
    """Validate a transcript and target level before submission.

    Returns:
        (text, level) ready for the assessment request

    Raises:
        AssessmentError: Empty or too short text, or unknown level
    """
    stripped = (text or "").strip()
    if not stripped:
        raise AssessmentError("No text to analyze: record speech or enter text first")
    if len(stripped) < MIN_SUBMISSION_LENGTH:
        raise AssessmentError("Text too short: provide more text for a meaningful analysis")

    level = (target_level or "").strip().upper()
    if level not in CEFR_LEVELS:
        raise AssessmentError(f"Unknown CEFR level: {target_level}")
    return stripped, level


def parse_analysis(content: str) -> GrammarAnalysis:
    """Parse the service's JSON answer into a normalized report."""
    try:
        data = json.loads(content or "{}")
    except json.JSONDecodeError as e:
        raise AssessmentError(f"Assessment response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AssessmentError("Assessment response must be a JSON object")

    try:
        return GrammarAnalysis.model_validate(data)
    except ValidationError as e:
        raise AssessmentError(f"Assessment response has an unexpected shape: {e}") from e


class AssessmentEngine:
    """Sends transcripts to an OpenAI chat model for CEFR assessment."""

    def __init__(self, api_key: str, model: str = "gpt-4o", language: str = "German"):
        """Initialize assessment engine.

        Args:
            api_key: OpenAI API key
            model: Chat model used for the assessment
            language: Name of the language being practiced
        """
        self.api_key = api_key
        self.model = model
        self.language = language
        self.base_url = "https://api.openai.com/v1/chat/completions"

        logger.info(f"AssessmentEngine initialized with model: {model}")

    async def analyze(self, text: str, target_level: str = "A1") -> GrammarAnalysis:
        """Assess a transcript; the text is submitted as-is.

        Raises:
            AssessmentError: If the submission is invalid or the service fails
        """
        text, level = prepare_submission(text, target_level)
        logger.info(f"Submitting {len(text)} characters for assessment (target {level})")

        content = await self.send_prompt(
            USER_PROMPT.format(language=self.language, text=text, level=level),
            system=SYSTEM_PROMPT.format(language=self.language),
        )
        analysis = parse_analysis(content)
        logger.info(f"Assessment complete: detected level {analysis.detected_level}, "
                    f"overall {analysis.overall_score}")
        return analysis

    async def send_prompt(self, prompt: str, system: str, temperature: float = 0.3) -> str:
        """Send a prompt to the chat model and return the message content.

        Raises:
            AssessmentError: If the API call fails
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        data = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": temperature,
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.base_url, headers=headers, json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise AssessmentError(f"Assessment API error: {response.status} - {error_text}")

                    result = await response.json()
        except aiohttp.ClientError as e:
            raise AssessmentError(f"Assessment request failed: {e}") from e

        return result["choices"][0]["message"]["content"] or "{}"
