"""Assembly of the policy chain from pipeline options."""

import time

import structlog

from src.features.pipeline.chain import PolicyDescriptor
from src.features.pipeline.options import PipelineOptions
from src.features.pipeline.policies import (
    client_request_id_policy,
    deserialization_policy,
    exponential_retry_policy,
    signing_policy,
    system_error_retry_policy,
    timeout_policy,
    user_agent_policy,
)
from src.features.pipeline.policies.retry import SleepFunc
from src.features.pipeline.protocols import ServiceClientCredentials


logger = structlog.get_logger()


def create_request_policy_factories(
    credentials: ServiceClientCredentials | None = None,
    options: PipelineOptions | None = None,
    sleep: SleepFunc = time.sleep,
) -> list[PolicyDescriptor]:
    """Build the ordered policy list, outermost first.

    The order is fixed: retry wraps timeout so an expired deadline triggers
    a full resend, both wrap the transport so every attempt gets a fresh
    deadline and a fresh network call, and signing wraps all of them so a
    request is signed once and its retries resend that signature.

    Args:
        credentials: Signing credentials; no signing policy when None.
        options: Pipeline options; defaults when None.
        sleep: Backoff sleep used by retry policies.

    Returns:
        Policy descriptors from outermost to innermost.
    """
    options = options or PipelineOptions()
    factories: list[PolicyDescriptor] = []

    if options.generate_client_request_id_header:
        factories.append(client_request_id_policy(options.client_request_id_header_name))

    if credentials is not None:
        factories.append(signing_policy(credentials))

    factories.append(
        user_agent_policy(options.user_agent, options.user_agent_header_name)
    )

    if not options.no_retry_policy:
        retry_options = options.retry_options()
        factories.append(exponential_retry_policy(retry_options, sleep))
        factories.append(timeout_policy(options.request_timeout_ms))
        factories.append(system_error_retry_policy(retry_options, sleep))

    factories.append(deserialization_policy(options.deserialization_content_types))

    logger.debug(
        "policy_chain_built",
        component="pipeline",
        policies=[factory.name for factory in factories],
    )
    return factories
