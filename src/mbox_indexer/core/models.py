"""Core domain models used across the application."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(slots=True, frozen=True)
class ArchiveUrlInfo:
    """Routing metadata recovered from an encoded delta file name."""

    source_url: str
    project: str
    list_type: str | None

    @property
    def list_key(self) -> str:
        """Key looked up in the active list configuration."""
        if self.list_type:
            return f"{self.project}-{self.list_type}"
        return self.project


@dataclass(slots=True, frozen=True)
class DeltaFile:
    """A mail file waiting in the delta folder."""

    path: Path
    modified_at: float
    writable: bool

    @property
    def name(self) -> str:
        return self.path.name

    def age(self, now: float | None = None) -> float:
        """Seconds since the file was last modified."""
        current = time.time() if now is None else now
        return current - self.modified_at


@dataclass(slots=True, frozen=True)
class MailAttachment:
    """Text extracted from a single mail attachment."""

    content_type: str
    file_name: str
    content: str


@dataclass(slots=True, frozen=True)
class MailBodyContent:
    """Normalized text and attachment content of one mail body."""

    message_id: str | None = None
    first_text_content: str | None = None
    first_text_content_without_quotes: str | None = None
    first_html_content: str | None = None
    text_messages: tuple[str, ...] = ()
    html_messages: tuple[str, ...] = ()
    attachments: tuple[MailAttachment, ...] = ()


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True, frozen=True)
class Mail:
    """Parsed mail: selected headers plus the extracted body."""

    message_id: str | None
    subject: str | None
    author: str | None
    to: tuple[str, ...]
    cc: tuple[str, ...]
    date: datetime | None
    in_reply_to: str | None
    references: tuple[str, ...]
    headers: dict[str, str]
    body: MailBodyContent


@dataclass(slots=True, frozen=True)
class ProcessingOutcome:
    """Result of processing one delta file."""

    path: Path
    source_url: str | None
    delivered: bool
    error: str | None = None


@dataclass(slots=True)
class IndexReport:
    """Outcome summary for one pass over the delta folder."""

    discovered: int = 0
    filtered_out: int = 0
    skipped: int = 0
    delivered: int = 0
    failed: int = 0
    unfinished: int = 0
    outcomes: list[ProcessingOutcome] = field(default_factory=list)


__all__ = [
    "ArchiveUrlInfo",
    "DeltaFile",
    "IndexReport",
    "Mail",
    "MailAttachment",
    "MailBodyContent",
    "ProcessingOutcome",
]
