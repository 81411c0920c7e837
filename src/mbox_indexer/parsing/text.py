"""Text decoding and normalization helpers for mail bodies."""

from __future__ import annotations

import base64
import binascii
import codecs
import quopri
import re

import chardet

_SOFT_LINE_BREAK = re.compile(r"=\r?\n")
_MBOX_FROM_QUOTE = re.compile(r"^>From", re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")
_ISO_8859_PREFIX = "ISO8859"
_IDENTITY_ENCODINGS = frozenset({"7bit", "8bit", "binary"})


class DecodeError(ValueError):
    """Raised when a transfer encoding or charset cannot be decoded."""


class ChardetCharsetDetector:
    """Charset sniffing backed by ``chardet``."""

    def detect(self, payload: bytes) -> tuple[str | None, int]:
        """Return the most likely charset and a 0-100 confidence."""
        if not payload:
            return None, 0
        result = chardet.detect(payload)
        confidence = result.get("confidence") or 0.0
        return result.get("encoding"), int(round(confidence * 100))


def decode_transfer_encoding(raw: bytes, transfer_encoding: str) -> bytes:
    """Strictly undo ``transfer_encoding``; unknown encodings are errors."""
    encoding = transfer_encoding.strip().lower()
    if encoding == "base64":
        try:
            return base64.b64decode(b"".join(raw.split()), validate=True)
        except binascii.Error as exc:
            raise DecodeError(f"Invalid base64 payload: {exc}") from exc
    if encoding == "quoted-printable":
        return quopri.decodestring(raw)
    if encoding in _IDENTITY_ENCODINGS:
        return raw
    raise DecodeError(f"Unsupported transfer encoding: {transfer_encoding!r}")


def is_iso_8859(charset: str | None) -> bool:
    """Tell whether ``charset`` is some spelling of the ISO-8859 family."""
    if not charset:
        return False
    compact = charset.upper().replace("-", "").replace("_", "")
    return compact.startswith(_ISO_8859_PREFIX)


def decode_bytes(payload: bytes, charset: str) -> str:
    """Decode ``payload`` replacing malformed sequences; unknown charsets fail."""
    try:
        codecs.lookup(charset)
    except LookupError as exc:
        raise DecodeError(f"Unknown charset: {charset!r}") from exc
    return payload.decode(charset, errors="replace")


def strip_soft_line_breaks(content: str) -> str:
    """Remove ``=`` + line break artifacts left by lenient decoders."""
    return _SOFT_LINE_BREAK.sub("", content)


def unquote_mbox_from(content: str) -> str:
    """Rewrite mbox ``>From`` escapes at line start back to ``From``."""
    return _MBOX_FROM_QUOTE.sub("From", content)


def filter_out_quoted_content(content: str) -> str:
    """Drop reply quotes and blank lines, joining what is left with spaces."""
    lines = (line.strip() for line in content.split("\n"))
    return " ".join(line for line in lines if line and not line.startswith(">")).strip()


def normalize_whitespace(content: str) -> str:
    """Collapse every run of whitespace (line breaks included) to one space."""
    return _WHITESPACE.sub(" ", content).strip()


__all__ = [
    "ChardetCharsetDetector",
    "DecodeError",
    "decode_bytes",
    "decode_transfer_encoding",
    "filter_out_quoted_content",
    "is_iso_8859",
    "normalize_whitespace",
    "strip_soft_line_breaks",
    "unquote_mbox_from",
]
