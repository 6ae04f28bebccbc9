"""Loguru logging configuration.

Console lines carry the id of the load job that emitted them (``-`` outside a
job); wrap job execution in :func:`job_context` to set it.  Records bound with
``json_output=True`` are also written as JSON, and a rotating log file is
added when a ``log_dir`` is provided.
"""

import sys
from contextlib import AbstractContextManager
from pathlib import Path

from loguru import logger

_NO_JOB = "-"

_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | job={extra[job_id]} | {name}:{function}:{line} | {message}"
)


def job_context(job_id: str) -> AbstractContextManager[None]:
    """Tag every record logged inside the block, including from worker threads, with ``job_id``."""
    return logger.contextualize(job_id=job_id)


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit (case-insensitive).
        log_dir: Optional directory for log files.  When set, a file sink is
            added that rotates every 24 hours and keeps 7 days.
    """
    level = log_level.upper()
    logger.remove()
    logger.configure(extra={"job_id": _NO_JOB})
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT)
    logger.add(
        sys.stderr,
        level=level,
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        # enqueue: jobs log from both the event loop and count threads
        logger.add(
            log_path / "ev-api.log",
            level=level,
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
            enqueue=True,
        )
