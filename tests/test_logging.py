"""Tests for logging utilities."""

from __future__ import annotations

import logging

from mbox_indexer.core.config import LoggingSettings
from mbox_indexer.core.logging import TRACE, configure_logging


def test_configure_logging_sets_root_level() -> None:
    """configure_logging should set the root logger level according to settings."""

    settings = LoggingSettings(level="DEBUG", structured=False)
    configure_logging(settings)
    assert logging.getLogger().level == logging.DEBUG


def test_trace_level_is_registered() -> None:
    configure_logging(LoggingSettings(level="trace"))

    assert logging.getLevelName(TRACE) == "TRACE"
    assert logging.getLogger().level == TRACE


def test_httpx_request_logging_is_quieted() -> None:
    configure_logging(LoggingSettings(level="DEBUG", structured=True))

    assert logging.getLogger("httpx").level == logging.WARNING
