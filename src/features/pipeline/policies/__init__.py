"""Request policies.

Each policy wraps the next sender in the chain and adds one cross-cutting
behavior. Policies share no base class; they only implement
``send_request(request) -> Outcome``.
"""

from src.features.pipeline.policies.client_request_id import (
    ClientRequestIdPolicy,
    client_request_id_policy,
)
from src.features.pipeline.policies.deserialization import (
    DeserializationPolicy,
    deserialization_policy,
)
from src.features.pipeline.policies.retry import (
    ExponentialRetryPolicy,
    SystemErrorRetryPolicy,
    exponential_retry_policy,
    system_error_retry_policy,
)
from src.features.pipeline.policies.signing import SigningPolicy, signing_policy
from src.features.pipeline.policies.timeout import TimeoutPolicy, timeout_policy
from src.features.pipeline.policies.user_agent import (
    UserAgentPolicy,
    get_default_user_agent_value,
    user_agent_policy,
)


__all__ = [
    "ClientRequestIdPolicy",
    "DeserializationPolicy",
    "ExponentialRetryPolicy",
    "SigningPolicy",
    "SystemErrorRetryPolicy",
    "TimeoutPolicy",
    "UserAgentPolicy",
    "client_request_id_policy",
    "deserialization_policy",
    "exponential_retry_policy",
    "get_default_user_agent_value",
    "signing_policy",
    "system_error_retry_policy",
    "timeout_policy",
    "user_agent_policy",
]
