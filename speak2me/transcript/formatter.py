"""Readable formatting for raw speech transcripts.

Recognition output is lowercase and unpunctuated. `format_transcript` applies
a fixed, regex-driven heuristic: sentence breaks before connectives and
question words, commas before conjunctions, sentence-initial capitals, and
capitalization of a fixed list of German nouns and names. It is a
best-effort normalization for display, not a grammar-correct transformer;
words missing from the lists stay lowercase.
"""

import re
from typing import Iterable

SENTENCE_BREAK_WORDS = (
    # Discourse connectives
    "dann", "danach", "außerdem", "deshalb", "trotzdem", "also", "zuerst",
    "schließlich", "leider", "übrigens",
    # Interrogatives
    "wie", "was", "wo", "wann", "warum", "wer", "wieso", "weshalb", "woher",
    "wohin", "welche", "welcher", "welches",
)

COMMA_WORDS = ("aber", "denn", "sondern", "weil", "dass", "obwohl")

CAPITALIZED_WORDS = (
    # Places
    "deutschland", "österreich", "schweiz", "europa", "berlin", "münchen",
    "hamburg", "köln", "frankfurt", "stuttgart", "düsseldorf", "leipzig",
    "dresden", "wien", "zürich",
    # Topic nouns
    "arbeit", "beruf", "familie", "eltern", "mutter", "vater", "bruder",
    "schwester", "kinder", "freund", "freunde", "freundin", "schule",
    "universität", "studium", "stadt", "wohnung", "haus", "hobby", "hobbys",
    "sport", "musik", "urlaub", "reise", "wetter", "zeit", "jahr", "jahre",
    "tag", "woche", "wochenende", "name", "deutsch", "englisch", "sprache",
    "firma", "kollegen", "geld", "buch", "bücher", "film", "filme",
    # First names
    "peter", "anna", "maria", "thomas", "michael", "lisa", "julia", "stefan",
)

# Formal/plural pronouns: capital only where a sentence starts
POSITIONAL_WORDS = ("sie", "ihr", "ihnen")

_TERMINAL_PUNCTUATION = ".!?"


def _alternation(words: Iterable[str]) -> str:
    return "|".join(re.escape(word) for word in words)


_SENTENCE_BREAK_RE = re.compile(r"(?<=[^\s.!?,])\s+(" + _alternation(SENTENCE_BREAK_WORDS) + r")\b")
_COMMA_RE = re.compile(r"(?<=[^\s.!?,])\s+(" + _alternation(COMMA_WORDS) + r")\b(?=\s+\S)")
_SENTENCE_START_RE = re.compile(r"(^|[.!?]\s+)(\w)")
_CAPITALIZED_RE = re.compile(r"\b(" + _alternation(CAPITALIZED_WORDS) + r")\b")
_POSITIONAL_RE = re.compile(r"\b(" + _alternation(POSITIONAL_WORDS) + r")\b", re.IGNORECASE)
_BOUNDARY_BEFORE_RE = re.compile(r"(^|[.!?]\s+)$")


def _capitalize_positional(match: "re.Match[str]") -> str:
    word = match.group(1)
    if _BOUNDARY_BEFORE_RE.search(match.string, 0, match.start()):
        return word[0].upper() + word[1:]
    return word.lower()


def format_transcript(raw_text: str) -> str:
    """Punctuate and capitalize a raw transcript for display."""
    if not raw_text or not raw_text.strip():
        return raw_text

    text = " ".join(raw_text.split()).lower()

    text = _SENTENCE_BREAK_RE.sub(r". \1", text)
    text = _COMMA_RE.sub(r", \1", text)
    text = _SENTENCE_START_RE.sub(lambda m: m.group(1) + m.group(2).upper(), text)
    text = _CAPITALIZED_RE.sub(lambda m: m.group(1).capitalize(), text)
    text = _POSITIONAL_RE.sub(_capitalize_positional, text)

    if text[-1] not in _TERMINAL_PUNCTUATION:
        text += "."
    return text
