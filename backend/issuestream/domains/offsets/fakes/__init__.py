"""Fakes for the offsets domain."""

from .offset_store import FakeOffsetStore

__all__ = ["FakeOffsetStore"]
