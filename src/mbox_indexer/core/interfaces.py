"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from typing import Protocol


class CharsetDetector(Protocol):
    """Guesses the character set of a byte payload."""

    def detect(self, payload: bytes) -> tuple[str | None, int]:
        """Return ``(charset, confidence)`` with confidence in the 0-100 range."""
        raise NotImplementedError


class AttachmentExtractor(Protocol):
    """Turns an attachment payload into plain text."""

    def extract(self, payload: bytes, *, content_type: str, file_name: str) -> str:
        """Return the (length-capped) text content of ``payload``."""
        raise NotImplementedError


class DeliverySink(Protocol):
    """Destination accepting serialized mails for indexing."""

    def post(self, document: str, document_id: str) -> object:
        """Send ``document`` under ``document_id`` and return the service response."""
        raise NotImplementedError


__all__ = [
    "AttachmentExtractor",
    "CharsetDetector",
    "DeliverySink",
]
