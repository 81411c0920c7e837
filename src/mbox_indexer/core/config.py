"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle key=value structured logging"
    )


class PipelineSettings(BaseModel):
    """Settings controlling delta folder discovery and shutdown."""

    min_file_age_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Files modified more recently than this are left for the next run",
    )
    shutdown_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="How long to wait for in-flight tasks before cancelling the rest",
    )


class ExtractionSettings(BaseModel):
    """Settings for mail body and attachment extraction."""

    max_attachment_chars: int = Field(
        default=100_000, ge=1, description="Cap on text extracted per attachment"
    )
    charset_confidence_threshold: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Minimum sniffing confidence required to override an ISO-8859 charset",
    )


class DeliverySettings(BaseModel):
    """Settings for the indexing service the mails are pushed to."""

    service_host: str = Field(
        default="http://localhost:8080", description="Indexing service base URL"
    )
    service_path: str = Field(
        default="/v1/rest/content", description="Content push API path"
    )
    content_type: str = Field(
        default="jbossorg_mailing_list", description="Provider content type"
    )
    username: str | None = Field(default=None, description="Provider username")
    password: str | None = Field(default=None, description="Provider password")
    timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Request timeout for a single delivery"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)


class ActiveListConfigError(RuntimeError):
    """Raised when the active mailing list configuration cannot be read."""


ENV_PREFIX = "MBOX_INDEXER_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None, include_environment: bool = True
) -> AppSettings:
    """Load application settings from an optional env file and the environment."""
    collected = _collect_env_values(env_file, include_environment=include_environment)
    return AppSettings.model_validate(collected)


def load_active_lists(path: Path | str) -> frozenset[str]:
    """Read the set of active ``project[-listType]`` keys.

    The file uses ``key=value`` lines; values are ignored and a bare key is
    enough to activate a list.
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ActiveListConfigError(f"Active list configuration not found: {config_path}")
    try:
        values = dotenv_values(config_path, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ActiveListConfigError(
            f"Unable to read active list configuration {config_path}"
        ) from exc
    return frozenset(key.strip() for key in values if key and key.strip())


__all__ = [
    "ActiveListConfigError",
    "AppSettings",
    "DeliverySettings",
    "ExtractionSettings",
    "LoggingSettings",
    "PipelineSettings",
    "load_active_lists",
    "load_app_settings",
]
