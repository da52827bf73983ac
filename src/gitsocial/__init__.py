"""gitsocial - social history reconstructed from git repositories."""

__version__ = "0.1.0"
