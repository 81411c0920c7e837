"""Utilities for parsing raw mail sources into :class:`Mail` records."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from email import policy
from email.message import Message
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime

from ..core.models import Mail
from .body import BodyExtractor
from .content_tree import build_content_tree, message_headers


class MailParser:
    """Convert raw mail payloads into :class:`Mail` records."""

    def __init__(self, extractor: BodyExtractor) -> None:
        self._extractor = extractor
        self._parser = BytesParser(policy=policy.default)

    def parse_bytes(self, payload: bytes) -> Mail:
        """Parse raw RFC822 bytes into a :class:`Mail`."""
        return self.parse(self._parser.parsebytes(payload))

    def parse(self, message: Message) -> Mail:
        """Build a :class:`Mail` from an already parsed message.

        Body extraction errors propagate to the caller unchanged.
        """
        message_id = _strip_angle_brackets(_header(message, "Message-ID"))
        body = self._extractor.extract(build_content_tree(message), message_id=message_id)
        in_reply_to = _message_ids(_header(message, "In-Reply-To"))

        return Mail(
            message_id=message_id,
            subject=_header(message, "Subject"),
            author=_header(message, "From"),
            to=tuple(_extract_addresses(message.get_all("To", []))),
            cc=tuple(_extract_addresses(message.get_all("Cc", []))),
            date=_try_parse_datetime(_header(message, "Date")),
            in_reply_to=in_reply_to[0] if in_reply_to else None,
            references=tuple(_message_ids(_header(message, "References"))),
            headers=message_headers(message),
            body=body,
        )


def _header(message: Message, name: str) -> str | None:
    value = message.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _strip_angle_brackets(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip().removeprefix("<").removesuffix(">").strip()
    return stripped or None


def _message_ids(value: str | None) -> list[str]:
    if not value:
        return []
    identifiers = (_strip_angle_brackets(token) for token in value.split())
    return [identifier for identifier in identifiers if identifier]


def _extract_addresses(headers: Iterable[str]) -> Iterable[str]:
    for _, email_address in getaddresses([str(header) for header in headers]):
        if email_address:
            yield email_address


def _try_parse_datetime(header_value: str | None) -> datetime | None:
    if header_value is None:
        return None
    try:
        return parsedate_to_datetime(header_value)
    except (TypeError, ValueError):
        return None


__all__ = ["MailParser"]
