#!/usr/bin/env python3
"""
lsh Logging Configuration

Centralized logging setup for consistent formatting across the project.
Supports both development (console + file) and production modes.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Authorize...")
    logger.warning("Message send failed", extra={"msg_type": "ping", "attempt": 2})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional, Any, TYPE_CHECKING
import os

if TYPE_CHECKING:
    from shared.message import Message


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class GenericFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        context = []

        # Extract RTM fields from extra data
        if getattr(record, 'msg_type', None):
            context.append(f"msg={record.msg_type}")
        if getattr(record, 'channel', None):
            context.append(f"channel={record.channel}")
        if getattr(record, 'user', None):
            context.append(f"user={record.user}")
        if getattr(record, 'attempt', None):
            context.append(f"attempt={record.attempt}")

        formatted = super().format(record)
        if context:
            return f"[{' '.join(context)}] {formatted}"
        return formatted


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Listen...")

        # With context
        logger.info("Send message", extra={"msg_type": "message", "channel": "C1"})
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    logger.setLevel(_get_log_level(level))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    if _is_development():
        _add_file_handler(logger)
        _add_console_handler(logger, colored=True)
    else:
        _add_console_handler(logger, colored=False)
        _add_file_handler(logger)

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    if level:
        return getattr(logging, level.upper(), logging.INFO)

    env_level = os.getenv('LSH_LOG_LEVEL')
    if env_level:
        return getattr(logging, env_level.upper(), logging.INFO)

    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return (
        os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development'] or
        'pytest' in sys.modules
    )


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stderr)

    if colored and _supports_color():
        formatter = ColoredFormatter(fmt=fmt, datefmt='%H:%M:%S')
    else:
        formatter = GenericFormatter(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger) -> None:
    """Add file handler writing to $LSH_LOG_DIR/lsh.log"""

    log_dir = Path(os.getenv('LSH_LOG_DIR', 'logs'))
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_dir / "lsh.log")
    handler.setFormatter(GenericFormatter(
        fmt='%(asctime)s | %(name)-20s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    stream = sys.stderr
    if not (hasattr(stream, "isatty") and stream.isatty()):
        return False

    if os.getenv("TERM", "") == "dumb":
        return False

    if sys.platform == "win32":
        # Modern Windows terminals understand ANSI sequences
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode"

    return True

# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)
    if level:
        # Loggers handed out before startup keep their own handlers
        for name in _loggers_configured:
            logging.getLogger(name).setLevel(_get_log_level(level))


def log_lsh_message(logger: logging.Logger, level: str, text: str,
                    message: Optional["Message"] = None,
                    **context: Any) -> None:
    """
    Log an RTM message with structured context.

    Args:
        logger: Logger instance
        level: Log level ("debug", "info", "warning", "error")
        text: Log message
        message: Structured Message for automatic context extraction
        **context: Additional context fields

    Example:
        log_lsh_message(logger, "info", "Send message", message=ping, attempt=1)
    """

    extra_context = {}

    if message is not None:
        fields = message.to_dict()
        extra_context.update({
            'msg_type': fields.get('type'),
            'channel': fields.get('channel'),
            'user': fields.get('user'),
        })

    extra_context.update(context)

    log_func = getattr(logger, level.lower())
    log_func(text, extra=extra_context)
