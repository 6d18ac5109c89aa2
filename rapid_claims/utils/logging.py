"""Structured logging setup for the claim agent."""

import functools
import inspect
import logging
from contextvars import ContextVar, Token
from typing import Optional, Dict, Any
from pathlib import Path


# Fields every record carries so formats may reference them before a session starts
SESSION_FIELDS = {"session_id": "-", "step": "-", "component": "-"}

# Chatty third-party loggers kept at WARNING unless DEBUG is requested
_SDK_LOGGERS = ("boto3", "botocore", "urllib3", "multipart")


class ContextFilter(logging.Filter):
    """
    Stamp the live session fields onto every log record.

    Fields live in a ContextVar and are scoped to the asyncio task that set them.
    """

    def __init__(self, defaults: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.defaults = dict(SESSION_FIELDS if defaults is None else defaults)
        self._context: ContextVar[Dict[str, Any]] = ContextVar("rapid_claims_log_context", default={})

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context.get())

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in {**self.defaults, **self._context.get()}.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True

    def set_context(self, **kwargs) -> Token:
        return self._context.set({**self._context.get(), **kwargs})

    def restore(self, token: Token):
        self._context.reset(token)

    def clear_context(self):
        self._context.set({})


_context_filter = ContextFilter()


def _attach(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(_context_filter)
    return handler


def setup_logging(
    level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Route all claim agent logging through console and optional file handlers.

    Both handlers share the session context filter, so ``log_format`` may use
    ``%(session_id)s``, ``%(step)s`` and ``%(component)s``.

    Args:
        level: Logging level name; unknown names fall back to INFO
        log_format: Format string for log messages
        log_file: Optional path to a log file (parent directories are created)

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(log_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_attach(logging.StreamHandler(), numeric_level, formatter))

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_attach(logging.FileHandler(log_file), numeric_level, formatter))

    sdk_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    return root_logger


def get_context() -> Dict[str, Any]:
    """Return a copy of the fields currently attached to log records."""
    return dict(_context_filter.context)


def set_context(**kwargs):
    """
    Set context fields for all subsequent log messages.

    Example:
        set_context(session_id=3, step="ANALYZING")
        logger.info("Calling vision collaborator")  # carries session_id and step

    Args:
        **kwargs: Context key-value pairs
    """
    _context_filter.set_context(**kwargs)


def clear_context():
    """Clear all context fields."""
    _context_filter.clear_context()


def with_context(**context_kwargs):
    """
    Decorator to add context to all log messages within a function.

    Works for plain functions and coroutine functions; the previous context
    is restored once the call returns or raises.

    Example:
        @with_context(component="handshake")
        async def run(report):
            logger.info("Proposal sent")  # Includes component

    Args:
        **context_kwargs: Context key-value pairs
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                token = _context_filter.set_context(**context_kwargs)
                try:
                    return await func(*args, **kwargs)
                finally:
                    _context_filter.restore(token)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            token = _context_filter.set_context(**context_kwargs)
            try:
                return func(*args, **kwargs)
            finally:
                _context_filter.restore(token)

        return wrapper
    return decorator
