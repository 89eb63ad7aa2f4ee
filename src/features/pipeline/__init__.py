"""Outbound HTTP request pipeline.

The caller-facing ``ServiceClient`` lives in ``src.features.pipeline.client``;
it is not re-exported here because it depends on the transport package,
which itself imports from this package.
"""

from src.features.pipeline.builder import create_request_policy_factories
from src.features.pipeline.cancellation import CancellationToken
from src.features.pipeline.chain import PolicyDescriptor, TransportSender, compose
from src.features.pipeline.credentials import (
    BasicAuthenticationCredentials,
    TokenCredentials,
)
from src.features.pipeline.errors import (
    ErrorCode,
    PipelineError,
    RequestAbortedError,
    RequestSendError,
    ResponseParseError,
    TransportError,
    TransportErrorClass,
)
from src.features.pipeline.headers import HttpHeaders
from src.features.pipeline.loader import OptionsValidationError, load_pipeline_options
from src.features.pipeline.metrics import PipelineMetrics
from src.features.pipeline.models import HttpRequest, HttpResponse, Outcome
from src.features.pipeline.options import (
    DeserializationContentTypes,
    PipelineOptions,
    RetryOptions,
)
from src.features.pipeline.protocols import (
    HttpTransport,
    RequestSender,
    ServiceClientCredentials,
)
from src.features.pipeline.streams import (
    ProgressCallback,
    ResponseBodyStream,
    TransferProgress,
)


__all__ = [
    # Builder
    "PolicyDescriptor",
    "TransportSender",
    "compose",
    "create_request_policy_factories",
    # Cancellation
    "CancellationToken",
    # Credentials
    "BasicAuthenticationCredentials",
    "ServiceClientCredentials",
    "TokenCredentials",
    # Errors
    "ErrorCode",
    "OptionsValidationError",
    "PipelineError",
    "RequestAbortedError",
    "RequestSendError",
    "ResponseParseError",
    "TransportError",
    "TransportErrorClass",
    # Messages
    "HttpHeaders",
    "HttpRequest",
    "HttpResponse",
    "Outcome",
    "ProgressCallback",
    "ResponseBodyStream",
    "TransferProgress",
    # Options
    "DeserializationContentTypes",
    "PipelineOptions",
    "RetryOptions",
    "load_pipeline_options",
    # Protocols
    "HttpTransport",
    "RequestSender",
    # Metrics
    "PipelineMetrics",
]
