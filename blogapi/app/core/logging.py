"""Logging configuration for the blog API.

Logging is owned by an explicitly constructed :class:`LoggingService`. The
application factory starts it once, hands named loggers to the components
it builds, and shuts it down from the lifespan so queued records are
flushed before the process exits.
"""

import logging
import logging.config
import logging.handlers
import queue
import sys
from typing import Any, Dict, Optional

from blogapi.app.core.config import Settings


class ContextFilter(logging.Filter):
    """Logging filter that adds request context fields to log records.

    Components pass context through ``extra=``; records that do not carry a
    field get ``None`` so the ``context`` format string never fails.
    """

    CONTEXT_DEFAULTS = {
        "path": None,
        "method": None,
        "client_ip": None,
        "user_id": None,
    }

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True


def get_logging_config(log_level: str = "INFO", log_format: str = "text") -> Dict[str, Any]:
    """Get logging configuration dictionary.

    Args:
        log_level: Level applied to the application loggers
        log_format: ``text`` for plain lines, ``context`` to append request
            context fields

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    log_level = log_level.upper()

    formatters = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "context": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - path=%(path)s - method=%(method)s - client_ip=%(client_ip)s - user_id=%(user_id)s"
        },
    }
    default_formatter = "context" if log_format.lower() == "context" else "standard"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": default_formatter,
            "stream": sys.stdout,
            "filters": ["context"],
        },
        "error_console": {
            "class": "logging.StreamHandler",
            "level": "ERROR",
            "formatter": default_formatter,
            "stream": sys.stderr,
            "filters": ["context"],
        },
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {
                "()": "blogapi.app.core.logging.ContextFilter",
            },
        },
        "handlers": handlers,
        "loggers": {
            "blogapi": {
                "level": log_level,
                "handlers": ["console", "error_console"],
                "propagate": False,
            },
            "uvicorn": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


class LoggingService:
    """Process logging lifecycle: configure at startup, flush at shutdown.

    After :meth:`start`, the handlers configured for the ``blogapi`` logger are
    moved behind a :class:`logging.handlers.QueueListener`, so a log call on
    the request path only enqueues the record.

    Usage:
        logging_service = LoggingService.from_settings(settings)
        logging_service.start()
        logger = logging_service.get_logger("blogapi.middleware.rate_limit")
        ...
        logging_service.shutdown()
    """

    ROOT_LOGGER = "blogapi"

    def __init__(self, log_level: str = "INFO", log_format: str = "text"):
        self.log_level = log_level
        self.log_format = log_format
        self._listener: Optional[logging.handlers.QueueListener] = None
        self._queue_handler: Optional[logging.handlers.QueueHandler] = None
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "LoggingService":
        return cls(log_level=settings.log_level, log_format=settings.log_format)

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Apply the dictConfig and start the background listener."""
        if self._started:
            return

        logging.config.dictConfig(get_logging_config(self.log_level, self.log_format))

        app_logger = logging.getLogger(self.ROOT_LOGGER)
        targets = list(app_logger.handlers)
        log_queue: queue.Queue = queue.Queue(-1)
        queue_handler = logging.handlers.QueueHandler(log_queue)
        # Context defaults must be set before the record is enqueued.
        queue_handler.addFilter(ContextFilter())
        for handler in targets:
            app_logger.removeHandler(handler)
        app_logger.addHandler(queue_handler)
        self._queue_handler = queue_handler

        self._listener = logging.handlers.QueueListener(
            log_queue, *targets, respect_handler_level=True
        )
        self._listener.start()

        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        self._started = True

    def get_logger(self, name: str = ROOT_LOGGER) -> logging.Logger:
        """Get a logger under the application namespace."""
        if name != self.ROOT_LOGGER and not name.startswith(self.ROOT_LOGGER + "."):
            name = f"{self.ROOT_LOGGER}.{name}"
        return logging.getLogger(name)

    def shutdown(self) -> None:
        """Drain queued records and flush every handler."""
        if not self._started:
            return
        app_logger = logging.getLogger(self.ROOT_LOGGER)
        if self._listener is not None:
            # stop() processes everything still queued before returning
            self._listener.stop()
            if self._queue_handler is not None:
                app_logger.removeHandler(self._queue_handler)
                self._queue_handler = None
            # Late records (after shutdown) go straight to the real handlers.
            for handler in self._listener.handlers:
                handler.flush()
                app_logger.addHandler(handler)
            self._listener = None
        self._started = False


def get_logger(name: str = "blogapi") -> logging.Logger:
    """Get a logger instance with the specified name.

    Used as the fallback when a component is constructed without an
    injected logger (tests, scripts).
    """
    return logging.getLogger(name)


def get_log_context(
    path: Optional[str] = None,
    method: Optional[str] = None,
    client_ip: Optional[str] = None,
    user_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Create a log context dictionary for use with the extra parameter.

    Example:
        >>> logger.warning(
        ...     "Token verification failed",
        ...     extra=get_log_context(path="/api/v1/user/profile", method="GET"),
        ... )
    """
    context = {
        "path": path,
        "method": method,
        "client_ip": client_ip,
        "user_id": user_id,
    }
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
