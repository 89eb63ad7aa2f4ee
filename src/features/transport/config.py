"""Configuration for the httpx transport."""

from typing import Annotated

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.features.pipeline.constants import DEFAULT_CHUNK_SIZE


class TransportConfig(BaseModel):
    """Connection settings of the shared ``httpx.Client``.

    No client-wide timeout and no response size limit:
    deadlines come from each request, and payload size is the caller's
    concern.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    follow_redirects: bool = True
    verify_tls: bool = True
    max_connections: Annotated[int, Field(ge=1, le=1000)] = 100
    max_keepalive_connections: Annotated[int, Field(ge=0, le=1000)] = 20
    keepalive_expiry_seconds: Annotated[float, Field(ge=0.0, le=3600.0)] = 30.0
    chunk_size: Annotated[int, Field(ge=1, le=1024 * 1024)] = DEFAULT_CHUNK_SIZE


def create_http_client(config: TransportConfig | None = None) -> httpx.Client:
    """Create the keep-alive ``httpx.Client`` shared by all requests.

    Environment proxy settings are ignored (``trust_env=False``).

    Args:
        config: Transport configuration; defaults when None.

    Returns:
        A new client; the caller owns it and must close it.
    """
    config = config or TransportConfig()
    return httpx.Client(
        timeout=None,
        follow_redirects=config.follow_redirects,
        verify=config.verify_tls,
        trust_env=False,
        limits=httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_keepalive_connections,
            keepalive_expiry=config.keepalive_expiry_seconds,
        ),
    )
