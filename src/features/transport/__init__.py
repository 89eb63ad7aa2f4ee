"""httpx transport adapter for the request pipeline."""

from src.features.transport.client import NO_BODY, HttpxTransport, classify_exception
from src.features.transport.config import TransportConfig, create_http_client


__all__ = [
    "NO_BODY",
    "HttpxTransport",
    "TransportConfig",
    "classify_exception",
    "create_http_client",
]
