"""Content tree: the navigable MIME structure of one parsed mail.

The tree is a closed set of node types built from a stdlib
:class:`email.message.Message`; the body extractor pattern-matches on them.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from email.message import Message

DEFAULT_CHARSET = "us-ascii"
DEFAULT_TRANSFER_ENCODING = "7bit"


@dataclass(slots=True, frozen=True)
class Multipart:
    """A ``multipart/*`` container."""

    subtype: str
    children: tuple[ContentNode, ...]


@dataclass(slots=True, frozen=True)
class TextBody:
    """A ``text/*`` leaf.

    ``raw`` is the payload as it appears on the wire (still transfer encoded);
    ``decoded`` is the leniently transfer-decoded payload. A part without a
    ``Content-Transfer-Encoding`` header is ``7bit``.
    """

    mime_type: str
    charset: str | None
    transfer_encoding: str
    filename: str | None
    raw: bytes
    decoded: bytes

    def read_text(self, charset: str | None = None) -> str:
        """Return the decoded payload as text.

        ``charset`` overrides the declared one; unknown charsets fall back to
        ``us-ascii`` with replacement characters.
        """
        charset = charset or self.charset or DEFAULT_CHARSET
        try:
            codecs.lookup(charset)
        except LookupError:
            charset = DEFAULT_CHARSET
        return self.decoded.decode(charset, errors="replace")


@dataclass(slots=True, frozen=True)
class BinaryBody:
    """Any non-text leaf; ``payload`` is already transfer-decoded."""

    mime_type: str | None
    filename: str | None
    payload: bytes


@dataclass(slots=True, frozen=True)
class NestedMessage:
    """An attached ``message/rfc822`` with its own headers and body."""

    headers: dict[str, str]
    body: ContentNode


ContentNode = Multipart | TextBody | BinaryBody | NestedMessage

_NESTED_MESSAGE_TYPES = frozenset({"message/rfc822", "message/global"})
_IDENTITY_ENCODINGS = frozenset({"7bit", "8bit", "binary"})


def build_content_tree(message: Message) -> ContentNode:
    """Convert a parsed stdlib message (or part) into a content tree."""
    content_type = message.get_content_type()
    maintype = message.get_content_maintype()

    if maintype == "multipart":
        children: tuple[ContentNode, ...] = ()
        if message.is_multipart():
            children = tuple(build_content_tree(part) for part in message.get_payload())
        return Multipart(subtype=message.get_content_subtype(), children=children)

    if content_type in _NESTED_MESSAGE_TYPES and message.is_multipart():
        inner = message.get_payload(0)
        return NestedMessage(headers=message_headers(inner), body=build_content_tree(inner))

    filename = message.get_filename()
    if maintype in ("text", "message"):
        header = message.get("Content-Transfer-Encoding")
        transfer_encoding = str(header).strip().lower() if header else ""
        transfer_encoding = transfer_encoding or DEFAULT_TRANSFER_ENCODING
        raw = _raw_payload(message, transfer_encoding)
        decoded = raw if message.is_multipart() else message.get_payload(decode=True)
        return TextBody(
            mime_type=content_type,
            charset=message.get_content_charset(),
            transfer_encoding=transfer_encoding,
            filename=filename,
            raw=raw,
            decoded=decoded or b"",
        )

    payload = message.get_payload(decode=True)
    return BinaryBody(
        mime_type=content_type,
        filename=filename,
        payload=payload if isinstance(payload, bytes) else b"",
    )


def message_headers(message: Message) -> dict[str, str]:
    """Return the first value of every header of ``message``."""
    headers: dict[str, str] = {}
    for name, value in message.items():
        headers.setdefault(name, str(value))
    return headers


def _raw_payload(message: Message, transfer_encoding: str) -> bytes:
    payload = message.get_payload()
    if isinstance(payload, list):
        # message/delivery-status and friends: blocks of header fields
        return b"\n".join(part.as_bytes() for part in payload)
    if payload is None:
        return b""
    if transfer_encoding in _IDENTITY_ENCODINGS:
        # Without decode=True 8-bit payloads come back already charset-decoded.
        wire = message.get_payload(decode=True)
        return wire if isinstance(wire, bytes) else b""
    try:
        return payload.encode("ascii", "surrogateescape")
    except UnicodeEncodeError:
        return payload.encode("utf-8", "surrogateescape")


__all__ = [
    "BinaryBody",
    "ContentNode",
    "DEFAULT_CHARSET",
    "DEFAULT_TRANSFER_ENCODING",
    "Multipart",
    "NestedMessage",
    "TextBody",
    "build_content_tree",
    "message_headers",
]
