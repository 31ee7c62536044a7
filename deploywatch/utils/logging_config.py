"""Logging configuration for deploywatch with structured JSON output."""

import logging
import json
import sys
from pathlib import Path
from typing import Optional


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: LogRecord to format

        Returns:
            JSON string
        """
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'message': record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        # Add exception info if present
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s [%(threadName)s] - %(message)s'


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    fmt: str = 'json',
    handler: Optional[logging.Handler] = None
) -> logging.Logger:
    """Setup deploywatch logging configuration.

    The dashboard owns the terminal, so records go to `log_file` unless an
    explicit handler is given; with neither, they go to stderr.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: File receiving log records
        fmt: 'json' or 'text'
        handler: Custom handler, overrides `log_file`

    Returns:
        Configured logger instance
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logger = logging.getLogger('deploywatch')
    logger.setLevel(log_level)
    logger.propagate = False

    # Remove existing handlers
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    if handler is None:
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_file)
        else:
            handler = logging.StreamHandler(sys.stderr)

    if fmt == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler.setLevel(log_level)

    logger.addHandler(handler)

    # botocore is chatty at DEBUG
    logging.getLogger('botocore').setLevel(max(log_level, logging.INFO))

    return logger
