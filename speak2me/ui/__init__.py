"""Terminal user interface."""

from .keyboard_input import KeyboardInputHandler
from .transcript_screen import TranscriptScreen, render_analysis, render_level_meter

__all__ = ["KeyboardInputHandler", "TranscriptScreen", "render_analysis", "render_level_meter"]
