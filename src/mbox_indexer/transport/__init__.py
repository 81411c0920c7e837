"""Transport adapters for the downstream indexing service."""

from .http_client import DeliveryError, SearchiskoClient

__all__ = ["DeliveryError", "SearchiskoClient"]
