"""Extraction of normalized text and attachments from a mail content tree.

The extractor walks the tree in document order. The first ``text/plain`` or
``text/html`` part found fills the "first" slots of the result; every later
textual part is appended to the ordered text or HTML sequences. Named parts
and qualifying binary parts become attachments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..core.interfaces import AttachmentExtractor, CharsetDetector
from ..core.logging import TRACE
from ..core.models import MailAttachment, MailBodyContent
from .attachments import AttachmentExtractionError
from .content_tree import (
    DEFAULT_CHARSET,
    BinaryBody,
    ContentNode,
    Multipart,
    NestedMessage,
    TextBody,
)
from .text import (
    DecodeError,
    decode_bytes,
    decode_transfer_encoding,
    filter_out_quoted_content,
    is_iso_8859,
    normalize_whitespace,
    strip_soft_line_breaks,
    unquote_mbox_from,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 80

_SUPPORTED_MULTIPART_SUBTYPES = frozenset({"alternative", "mixed", "related", "signed"})
_IGNORED_BINARY_TYPES = frozenset({"application/pgp-signature", "application/ms-tnef"})
_CHARSET_ALIASES = {"x-gbk": "gbk"}


class MessageParseError(RuntimeError):
    """Raised when a mail body cannot be interpreted."""


class UnsupportedMultipartSubtype(MessageParseError):
    """Raised for multipart subtypes outside the supported set."""


class UnsupportedBodyType(MessageParseError):
    """Raised for content tree nodes the extractor does not know."""


@dataclass(slots=True)
class _BodyBuilder:
    """Mutable accumulator owned by exactly one traversal."""

    message_id: str | None = None
    first_text_content: str | None = None
    first_text_content_without_quotes: str | None = None
    first_html_content: str | None = None
    text_messages: list[str] = field(default_factory=list)
    html_messages: list[str] = field(default_factory=list)
    attachments: list[MailAttachment] = field(default_factory=list)

    @property
    def has_first_content(self) -> bool:
        return self.first_text_content is not None or self.first_html_content is not None

    def build(self) -> MailBodyContent:
        return MailBodyContent(
            message_id=self.message_id,
            first_text_content=self.first_text_content,
            first_text_content_without_quotes=self.first_text_content_without_quotes,
            first_html_content=self.first_html_content,
            text_messages=tuple(self.text_messages),
            html_messages=tuple(self.html_messages),
            attachments=tuple(self.attachments),
        )


class BodyExtractor:
    """Fold a content tree into an immutable :class:`MailBodyContent`."""

    def __init__(
        self,
        attachment_extractor: AttachmentExtractor,
        charset_detector: CharsetDetector,
        *,
        confidence_threshold: int = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        self._attachments = attachment_extractor
        self._charset_detector = charset_detector
        self._confidence_threshold = confidence_threshold

    def extract(self, node: ContentNode, message_id: str | None = None) -> MailBodyContent:
        """Walk ``node`` and return the extracted body content.

        Raises :class:`MessageParseError` subclasses when the tree contains a
        structure that cannot be interpreted; no partial result is returned.
        """
        builder = self._visit(node, _BodyBuilder(message_id=message_id))
        return builder.build()

    def _visit(self, node: ContentNode, builder: _BodyBuilder) -> _BodyBuilder:
        match node:
            case Multipart():
                return self._visit_multipart(node, builder)
            case TextBody():
                return self._visit_text(node, builder)
            case BinaryBody():
                return self._visit_binary(node, builder)
            case NestedMessage(body=body):
                return self._visit(body, builder)
            case _:
                raise UnsupportedBodyType(
                    f"Message body of type [{type(node).__name__}] is not supported"
                )

    def _visit_multipart(self, node: Multipart, builder: _BodyBuilder) -> _BodyBuilder:
        subtype = node.subtype.replace("-", "_").lower()
        if subtype not in _SUPPORTED_MULTIPART_SUBTYPES:
            raise UnsupportedMultipartSubtype(
                f"{node.subtype} is unsupported body multipart subtype"
            )
        if subtype == "alternative":
            return self._visit_alternative(node, builder)
        for child in node.children:
            builder = self._visit(child, builder)
        return builder

    def _visit_alternative(self, node: Multipart, builder: _BodyBuilder) -> _BodyBuilder:
        chosen = _first_text_child(node.children, "text/plain") or _first_text_child(
            node.children, "text/html"
        )
        if chosen is not None:
            return self._visit_text(chosen, builder)

        for child in node.children:
            if isinstance(child, (Multipart, NestedMessage)):
                builder = self._visit(child, builder)
            else:
                LOGGER.warning(
                    "Body of type [%s] not supported in multipart/alternative; ignoring",
                    type(child).__name__,
                )
        return builder

    def _visit_text(self, part: TextBody, builder: _BodyBuilder) -> _BodyBuilder:
        mime_type = part.mime_type.lower()
        LOGGER.log(
            TRACE,
            "Parsing text body, mimeType: '%s', transferEncoding: '%s', charset: '%s', filename: '%s'",
            mime_type,
            part.transfer_encoding,
            part.charset,
            part.filename,
        )
        if part.filename is not None:
            return self._add_attachment(builder, mime_type, part.filename, part.decoded)

        content = self._read_text(part)
        if mime_type == "text/plain":
            content = unquote_mbox_from(content)

        if not builder.has_first_content:
            if mime_type == "text/plain":
                builder.first_text_content_without_quotes = filter_out_quoted_content(content)
                builder.first_text_content = content
                return builder
            if mime_type == "text/html":
                builder.first_html_content = content
                return builder

        if mime_type == "text/html":
            builder.html_messages.append(content)
        else:
            builder.text_messages.append(content)
        return builder

    def _visit_binary(self, part: BinaryBody, builder: _BodyBuilder) -> _BodyBuilder:
        mime_type = part.mime_type.lower() if part.mime_type else None
        if (
            part.filename is not None
            and mime_type is not None
            and mime_type not in _IGNORED_BINARY_TYPES
            and not mime_type.startswith("image/")
        ):
            return self._add_attachment(builder, mime_type, part.filename, part.payload)

        LOGGER.log(
            TRACE, "Ignoring binary mimeType: '%s', filename: '%s'", mime_type, part.filename
        )
        return builder

    def _read_text(self, part: TextBody) -> str:
        charset = _resolve_charset(part.charset)
        try:
            payload = decode_transfer_encoding(part.raw, part.transfer_encoding)
            if is_iso_8859(charset):
                charset = self._sniff_charset(payload, charset)
            return decode_bytes(payload, charset)
        except DecodeError as exc:
            LOGGER.log(TRACE, "Error decoding transfer coding: %s", exc)
            return strip_soft_line_breaks(part.read_text(charset))

    def _sniff_charset(self, payload: bytes, declared: str) -> str:
        detected, confidence = self._charset_detector.detect(payload)
        if detected and confidence >= self._confidence_threshold:
            LOGGER.log(
                TRACE,
                "Overriding charset from '%s' to '%s' with confidence %d",
                declared,
                detected,
                confidence,
            )
            return detected
        return declared

    def _add_attachment(
        self, builder: _BodyBuilder, content_type: str, file_name: str, payload: bytes
    ) -> _BodyBuilder:
        LOGGER.log(
            TRACE, "Processing attachment: Mime-Type='%s', filename='%s'", content_type, file_name
        )
        try:
            text = self._attachments.extract(
                payload, content_type=content_type, file_name=file_name
            )
        except AttachmentExtractionError as exc:
            LOGGER.warning("Ignoring attachment %s: parsing error: %s", file_name, exc)
            return builder

        builder.attachments.append(
            MailAttachment(
                content_type=content_type,
                file_name=file_name,
                content=normalize_whitespace(text),
            )
        )
        return builder


def _first_text_child(children: tuple[ContentNode, ...], mime_type: str) -> TextBody | None:
    for child in children:
        if isinstance(child, TextBody) and child.mime_type.lower() == mime_type:
            return child
    return None


def _resolve_charset(charset: str | None) -> str:
    if not charset:
        return DEFAULT_CHARSET
    alias = _CHARSET_ALIASES.get(charset.lower())
    if alias is not None:
        LOGGER.warning("Unsupported encoding found: '%s', using '%s' instead", charset, alias)
        return alias
    return charset


__all__ = [
    "BodyExtractor",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "MessageParseError",
    "UnsupportedBodyType",
    "UnsupportedMultipartSubtype",
]
