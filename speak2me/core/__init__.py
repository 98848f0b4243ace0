"""Core runtime primitives."""

from .dispatcher import EventDispatcher, DeferredCall

__all__ = ["EventDispatcher", "DeferredCall"]
