"""Service layer for Speak2Me."""

from .session_controller import SessionController

__all__ = [
    "SessionController",
]
