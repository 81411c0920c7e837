"""HTTP client pushing serialized mails to the content indexing service."""

from __future__ import annotations

import json
import logging
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from ..core.config import DeliverySettings

LOGGER = logging.getLogger(__name__)


class DeliveryError(RuntimeError):
    """Raised when the indexing service does not accept a document."""


class SearchiskoClient:
    """Blocking client for the content push API.

    One client is shared by every worker; its connection pool must allow one
    connection per worker plus one for the submitting thread.
    """

    def __init__(
        self,
        settings: DeliverySettings,
        *,
        max_connections: int,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if max_connections < 1:
            raise ValueError("max_connections must be positive")
        self._settings = settings
        auth = None
        if settings.username is not None:
            auth = httpx.BasicAuth(settings.username, settings.password or "")
        self._client = httpx.Client(
            base_url=settings.service_host,
            auth=auth,
            timeout=settings.timeout_seconds,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
            headers={"Content-Type": "application/json; charset=utf-8"},
            transport=transport,
        )

    def endpoint(self, document_id: str) -> str:
        """Return the request path for ``document_id``."""
        path = self._settings.service_path.rstrip("/")
        content_type = quote(self._settings.content_type, safe="")
        return f"{path}/{content_type}/{quote(document_id, safe='')}"

    def post(self, document: str, document_id: str) -> Any:
        """Send ``document`` and return the decoded service response."""
        url = self.endpoint(document_id)
        try:
            response = self._client.post(url, content=document.encode("utf-8"))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DeliveryError(
                f"Indexing service rejected {document_id}: "
                f"HTTP {exc.response.status_code} {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Failed to deliver {document_id}: {exc}") from exc

        LOGGER.debug("Service answered %s for %s", response.status_code, document_id)
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SearchiskoClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["DeliveryError", "SearchiskoClient"]
