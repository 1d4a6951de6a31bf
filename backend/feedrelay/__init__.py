"""feedrelay - feed screening, summarization and publishing pipeline."""

__version__ = "0.1.0"
