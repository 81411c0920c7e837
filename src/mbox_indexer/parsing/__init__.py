"""Mail parsing and body extraction."""

from .attachments import AttachmentExtractionError, AttachmentTextExtractor
from .body import (
    BodyExtractor,
    MessageParseError,
    UnsupportedBodyType,
    UnsupportedMultipartSubtype,
)
from .mail import MailParser
from .text import ChardetCharsetDetector, DecodeError

__all__ = [
    "AttachmentExtractionError",
    "AttachmentTextExtractor",
    "BodyExtractor",
    "ChardetCharsetDetector",
    "DecodeError",
    "MailParser",
    "MessageParseError",
    "UnsupportedBodyType",
    "UnsupportedMultipartSubtype",
]
