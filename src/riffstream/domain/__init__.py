"""Domain layer - media ingest/streaming rules and play counting."""
