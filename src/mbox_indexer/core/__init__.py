"""Core utilities for configuration, logging, and shared models."""

from .config import (
    ActiveListConfigError,
    AppSettings,
    DeliverySettings,
    load_active_lists,
    load_app_settings,
)
from .logging import TRACE, configure_logging

__all__ = [
    "ActiveListConfigError",
    "AppSettings",
    "DeliverySettings",
    "TRACE",
    "configure_logging",
    "load_active_lists",
    "load_app_settings",
]
