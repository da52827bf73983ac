"""Package logging for gitsocial.

Handlers live on the ``gitsocial`` logger; module loggers propagate to it.
"""

import logging
import sys
from pathlib import Path

DEFAULT_LOG_DIR = Path.home() / ".gitsocial" / "logs"


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Attach handlers to the gitsocial package logger.

    The first call adds a file handler writing ``<log_dir>/<name>.log`` and,
    when ``console`` is set, a stderr handler. Later calls only change levels,
    so a CLI run and the modules it imports share one set of handlers.

    Args:
        name: Component name; picks the log file and the returned logger
        log_dir: Log directory, ~/.gitsocial/logs when omitted
        level: Level for the package logger and the new handlers
        console: Also write to stderr

    Returns:
        The ``gitsocial.<name>`` logger
    """
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger("gitsocial")
    root.setLevel(level)

    logger = logging.getLogger(f"gitsocial.{name}")
    logger.setLevel(level)

    # Handlers are attached once per process
    if root.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger ``gitsocial.<name>``.

    It has no handlers of its own and writes wherever setup_logging pointed
    the package logger; before that, records fall through to Python's
    last-resort handler.
    """
    return logging.getLogger(f"gitsocial.{name}")
