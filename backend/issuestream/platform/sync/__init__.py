"""Ingestion core: poll loop, cursor store, event emitter and worker."""
