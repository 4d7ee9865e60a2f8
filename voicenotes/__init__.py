"""Self-hosted voice notes: transcription, AI enrichment and search."""

__version__ = "0.1.0"
