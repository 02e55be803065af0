"""
Structured JSON logging for docshift.

Provides standardized logging with:
- JSON formatted output to stderr
- UTC timestamps with timezone info
- Structured context fields
- Per-document correlation via doc_path

All logs use Python's standard logging module with custom formatting.
Log level defaults to WARNING so that previews stay readable; use
setup_logging(verbose=True) for DEBUG.

Examples:
    >>> import logging
    >>> from docshift.utils.logging import setup_logging
    >>> setup_logging(verbose=True)
    >>> logger = logging.getLogger("docshift.change")
    >>> logger.info("Change resolved", extra={"doc_path": "users/alice"})

Notes:
    - Only stderr is used (stdout reserved for diffs and JSON output)
    - Document field values are never logged, only paths and field names
"""

import json
import logging
import sys
from typing import Any

from docshift.utils.time import utc_timestamp


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs logs as JSON with structured fields.

    Each log record is formatted as a JSON object with:
    - timestamp: ISO 8601 UTC timestamp
    - level: Log level (INFO, WARNING, ERROR, DEBUG)
    - component: Module/component name (from logger name)
    - message: Human-readable log message
    - context: Additional structured data (from 'context' in extra)
    - doc_path: Target document (from 'doc_path' in extra, if available)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": utc_timestamp(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "context") and isinstance(record.context, dict):
            log_entry["context"] = record.context

        if hasattr(record, "doc_path"):
            log_entry["doc_path"] = record.doc_path

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure structured JSON logging for the application.

    Sets up:
    - JSON formatter for structured output
    - stderr output (stdout reserved for user-facing content)
    - Log level: DEBUG if verbose=True, WARNING otherwise

    Args:
        verbose: If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove any existing handlers (prevents duplicate logs)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())

    root_logger.addHandler(handler)




def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    doc_path: str | None = None,
) -> None:
    """
    Log a message with structured context and optional doc_path.

    Equivalent to logger.log(level, message, extra={'context': {...}, 'doc_path': '...'})

    Args:
        logger: Logger instance, usually logging.getLogger(__name__)
        level: Log level (logging.INFO, logging.WARNING, etc.)
        message: Human-readable log message
        context: Optional dict with additional structured data
        doc_path: Optional target document path to include in log

    Example:
        >>> logger = logging.getLogger("docshift.change")
        >>> log_with_context(
        ...     logger,
        ...     logging.DEBUG,
        ...     "Inferred command",
        ...     context={"command": "set"},
        ...     doc_path="users/alice",
        ... )
    """
    extra = {}

    if context is not None:
        extra["context"] = context

    if doc_path is not None:
        extra["doc_path"] = doc_path

    logger.log(level, message, extra=extra if extra else None)
