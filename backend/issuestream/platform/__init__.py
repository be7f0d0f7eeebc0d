"""Platform: sources, entities, cursors and the ingestion core."""
