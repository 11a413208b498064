"""Core utilities for the blog API application."""

from blogapi.app.core.config import Settings, get_settings
from blogapi.app.core.logging import LoggingService, get_log_context, get_logger
from blogapi.app.core.periodic import PeriodicTask

__all__ = [
    "Settings",
    "get_settings",
    "LoggingService",
    "get_log_context",
    "get_logger",
    "PeriodicTask",
]
