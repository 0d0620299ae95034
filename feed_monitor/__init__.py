"""RSS feed monitor - periodic fetch, storage and retention of a single feed."""

__version__ = "1.1.0"
