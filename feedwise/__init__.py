"""Feed aggregation with asynchronous ingestion and feedback-weighted ranking."""

__version__ = "0.1.0"
