"""Offsets domain: durable resumption offsets owned by the host."""

from .filesystem import FilesystemOffsetStore
from .protocols import OffsetStore

__all__ = ["FilesystemOffsetStore", "OffsetStore"]
