"""Sinks domain: where outbound events are delivered."""

from .jsonl import JsonLinesSink
from .protocols import EventSink

__all__ = ["EventSink", "JsonLinesSink"]
