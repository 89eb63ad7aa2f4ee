"""Policy parsing JSON and XML response bodies."""

import json
from xml.etree.ElementTree import ParseError

import defusedxml.ElementTree as DefusedET
import structlog
from defusedxml import DefusedXmlException

from src.features.pipeline.chain import PolicyDescriptor
from src.features.pipeline.constants import HEADER_CONTENT_TYPE
from src.features.pipeline.errors import ResponseParseError
from src.features.pipeline.models import HttpRequest, HttpResponse, Outcome
from src.features.pipeline.options import DeserializationContentTypes
from src.features.pipeline.protocols import RequestSender


logger = structlog.get_logger()

# Body excerpt length included in parse error messages
_BODY_EXCERPT_LENGTH = 200


def media_type(response: HttpResponse) -> str:
    """Get the response media type without parameters, lower-cased."""
    content_type = response.headers.get(HEADER_CONTENT_TYPE) or ""
    return content_type.split(";", 1)[0].strip().lower()


class DeserializationPolicy:
    """Fills ``parsed_body`` for buffered responses of configured content types.

    JSON bodies become Python objects; XML bodies become an ``Element``.
    Streamed and empty bodies are left untouched.
    """

    def __init__(
        self,
        next_sender: RequestSender,
        content_types: DeserializationContentTypes,
    ) -> None:
        self._next = next_sender
        self._json_types = frozenset(t.lower() for t in content_types.json_types)
        self._xml_types = frozenset(t.lower() for t in content_types.xml_types)
        self._log = logger.bind(component="pipeline", subcomponent="deserialization")

    def send_request(self, request: HttpRequest) -> Outcome:
        outcome = self._next.send_request(request)
        response = outcome.response
        if response is None or response.stream_body is not None:
            return outcome
        if not response.body_as_text:
            return outcome

        kind = media_type(response)
        try:
            if kind in self._json_types:
                response.parsed_body = json.loads(response.body_as_text)
            elif kind in self._xml_types:
                response.parsed_body = DefusedET.fromstring(response.body_as_text)
        except (ValueError, ParseError, DefusedXmlException) as exc:
            excerpt = response.body_as_text[:_BODY_EXCERPT_LENGTH]
            self._log.warning(
                "response_parse_failed",
                content_type=kind,
                status_code=response.status,
                error=str(exc),
            )
            msg = f'Error "{exc}" occurred while parsing the response body - {excerpt}.'
            return Outcome.failure(ResponseParseError(msg, response))

        return outcome


def deserialization_policy(
    content_types: DeserializationContentTypes | None = None,
) -> PolicyDescriptor:
    """Create the deserialization policy descriptor."""
    types = content_types or DeserializationContentTypes()
    return PolicyDescriptor(
        name="deserialization",
        create=lambda next_sender: DeserializationPolicy(next_sender, types),
    )
