"""History reconstruction: commits in, typed log entries out."""

from .reconstruct import Classification, classify_commit, reconstruct
from .service import LogFilter, get_logs

__all__ = ["Classification", "LogFilter", "classify_commit", "get_logs", "reconstruct"]
