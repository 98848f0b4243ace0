"""Speak2Me - continuous speech capture and transcript accumulation for language practice."""

__version__ = "0.1.0"
