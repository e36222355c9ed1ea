"""contentflow - incremental source sync and AI enrichment pipeline."""

__version__ = "0.1.0"
