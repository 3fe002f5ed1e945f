"""Command-line RSS feed aggregator backed by a local SQLite database."""

__version__ = "0.1.0"

__all__ = ["__version__"]