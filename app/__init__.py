"""Word-budgeted text summarization service."""

__version__ = "1.0.0"
