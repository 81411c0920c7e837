"""Conversion of parsed mails into the indexing service document format."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from ..parsing.text import filter_out_quoted_content
from .models import Mail, MailAttachment

SNIPPET_LENGTH = 200


def mail_to_document(mail: Mail, metadata: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Return the JSON-ready document for ``mail`` merged with ``metadata``."""
    body = mail.body
    without_quotes = body.first_text_content_without_quotes
    if without_quotes is None and body.first_text_content is not None:
        without_quotes = filter_out_quoted_content(body.first_text_content)

    document: dict[str, Any] = {
        "message_id": mail.message_id,
        "subject": mail.subject,
        "author": mail.author,
        "to": list(mail.to),
        "cc": list(mail.cc),
        "date": mail.date.isoformat() if mail.date else None,
        "in_reply_to": mail.in_reply_to,
        "references": list(mail.references),
        "message_snippet": without_quotes[:SNIPPET_LENGTH] if without_quotes else None,
        "first_text_message": body.first_text_content,
        "first_text_message_without_quotes": without_quotes,
        "first_html_message": body.first_html_content,
        "text_messages": list(body.text_messages),
        "text_messages_cnt": len(body.text_messages),
        "html_messages": list(body.html_messages),
        "html_messages_cnt": len(body.html_messages),
        "message_attachments": [_attachment_to_dict(item) for item in body.attachments],
        "message_attachments_cnt": len(body.attachments),
    }
    if metadata:
        document.update(metadata)
    return document


def to_json(mail: Mail, metadata: Mapping[str, Any] | None = None) -> str:
    """Serialize ``mail`` to the JSON wire format."""
    return json.dumps(mail_to_document(mail, metadata), ensure_ascii=False)


def _attachment_to_dict(attachment: MailAttachment) -> dict[str, str]:
    return {
        "content_type": attachment.content_type,
        "filename": attachment.file_name,
        "content": attachment.content,
    }


__all__ = ["SNIPPET_LENGTH", "mail_to_document", "to_json"]
