"""Fakes for the sinks domain."""

from .sink import FakeEventSink

__all__ = ["FakeEventSink"]
