"""Search over reconstructed logs."""

from .indexer import LOG_ENTRIES_SCHEMA, LogIndexer

__all__ = ["LOG_ENTRIES_SCHEMA", "LogIndexer"]
