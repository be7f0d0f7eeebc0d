"""Domains owned by the host: offsets and sinks."""
