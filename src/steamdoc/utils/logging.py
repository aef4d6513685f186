"""Structured logging setup for steamdoc."""

import os
from pathlib import Path
from typing import Any

import structlog


VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def configure_logging(log_dir: Path | None = None) -> Path:
    """
    Configure structlog for JSON logging to ~/.cache/steamdoc/logs/steamdoc.log.

    Log level can be controlled via STEAMDOC_LOG_LEVEL environment variable:
    - Set to "DEBUG" to see every parse and block mutation
    - Defaults to "INFO" if not set

    Log levels:
    - DEBUG: Parse results, individual block mutations
    - INFO: Document lifecycle, applied diff batches, CLI commands
    - WARNING: Diffs whose target block no longer exists
    - ERROR: Failed apply batches, unresolvable anchors

    Library code only calls get_logger(); configuration is left to the
    application (the CLI calls this on startup).

    Args:
        log_dir: Override for the log directory (used by tests)

    Returns:
        Path of the log file being written

    Example:
        STEAMDOC_LOG_LEVEL=DEBUG steamdoc apply lesson.md diffs.json
        tail -f ~/.cache/steamdoc/logs/steamdoc.log | jq .
    """
    if log_dir is None:
        log_dir = Path.home() / ".cache" / "steamdoc" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "steamdoc.log"

    log_level = os.environ.get("STEAMDOC_LOG_LEVEL", "INFO").upper()
    if log_level not in VALID_LEVELS:
        log_level = "INFO"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )

    return log_file


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Structured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("diff_batch_applied", doc_id="doc-1", applied=3)
    """
    return structlog.get_logger(name)
