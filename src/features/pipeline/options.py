"""Configuration models for the request pipeline."""

import random
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.features.pipeline.constants import (
    DEFAULT_CLIENT_MAX_RETRY_INTERVAL_MS,
    DEFAULT_CLIENT_MIN_RETRY_INTERVAL_MS,
    DEFAULT_CLIENT_REQUEST_ID_HEADER_NAME,
    DEFAULT_CLIENT_RETRY_COUNT,
    DEFAULT_CLIENT_RETRY_INTERVAL_MS,
    DEFAULT_JSON_CONTENT_TYPES,
    DEFAULT_XML_CONTENT_TYPES,
    HEADER_USER_AGENT,
)


class RetryOptions(BaseModel):
    """Configuration for retry behavior.

    Uses exponential backoff with a randomized step:
    delay = min(min_interval + (2^n - 1) * rand(0.8..1.2) * interval, max_interval)
    where n is the number of retries performed so far, including this one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry_count: Annotated[int, Field(ge=0, le=20)] = DEFAULT_CLIENT_RETRY_COUNT
    retry_interval_ms: Annotated[float, Field(ge=0)] = DEFAULT_CLIENT_RETRY_INTERVAL_MS
    min_retry_interval_ms: Annotated[float, Field(ge=0)] = (
        DEFAULT_CLIENT_MIN_RETRY_INTERVAL_MS
    )
    max_retry_interval_ms: Annotated[float, Field(ge=0)] = (
        DEFAULT_CLIENT_MAX_RETRY_INTERVAL_MS
    )

    def get_delay_ms(self, retry_number: int) -> float:
        """Calculate delay before the given retry.

        Args:
            retry_number: 1-based number of the retry about to happen.

        Returns:
            Delay in milliseconds.
        """
        increment = 2**retry_number - 1
        low = self.retry_interval_ms * 0.8
        high = self.retry_interval_ms * 1.2
        bounded_step = low + random.random() * (high - low)  # noqa: S311
        delay = self.min_retry_interval_ms + increment * bounded_step
        return min(delay, self.max_retry_interval_ms)


class DeserializationContentTypes(BaseModel):
    """Content types whose bodies are parsed automatically."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    json_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_JSON_CONTENT_TYPES),
        alias="json",
    )
    xml_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_XML_CONTENT_TYPES),
        alias="xml",
    )


class PipelineOptions(BaseModel):
    """Options consumed by the policy chain builder.

    Accepts both snake_case names and the camelCase names used by the
    service SDK configuration (``noRetryPolicy``, ``requestTimeout``...).
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    generate_client_request_id_header: bool = Field(
        default=False, alias="generateClientRequestIdHeader"
    )
    client_request_id_header_name: str = Field(
        default=DEFAULT_CLIENT_REQUEST_ID_HEADER_NAME,
        min_length=1,
        alias="clientRequestIdHeaderName",
    )
    user_agent: str | None = Field(default=None, alias="userAgent")
    user_agent_header_name: str = Field(
        default=HEADER_USER_AGENT, min_length=1, alias="userAgentHeaderName"
    )
    no_retry_policy: bool = Field(default=False, alias="noRetryPolicy")
    retry_count: int | None = Field(default=None, ge=0, le=20, alias="retryCount")
    retry_interval_ms: float | None = Field(default=None, ge=0, alias="retryInterval")
    min_retry_interval_ms: float | None = Field(
        default=None, ge=0, alias="minRetryInterval"
    )
    max_retry_interval_ms: float | None = Field(
        default=None, ge=0, alias="maxRetryInterval"
    )
    request_timeout_ms: float | None = Field(default=None, alias="requestTimeout")
    deserialization_content_types: DeserializationContentTypes = Field(
        default_factory=DeserializationContentTypes,
        alias="deserializationContentTypes",
    )

    def retry_options(self) -> RetryOptions:
        """Build retry options, keeping defaults for unset values.

        Returns:
            RetryOptions for the exponential retry policy.
        """
        overrides = {
            "retry_count": self.retry_count,
            "retry_interval_ms": self.retry_interval_ms,
            "min_retry_interval_ms": self.min_retry_interval_ms,
            "max_retry_interval_ms": self.max_retry_interval_ms,
        }
        return RetryOptions(**{k: v for k, v in overrides.items() if v is not None})
