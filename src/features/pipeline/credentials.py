"""Credentials that sign outgoing requests with an Authorization header."""

import base64

from src.features.pipeline.models import HttpRequest


_AUTHORIZATION_HEADER = "Authorization"


class TokenCredentials:
    """Static token credentials, ``Authorization: <scheme> <token>``.

    Attributes:
        token: Access token.
        authorization_scheme: Scheme placed before the token.
    """

    def __init__(self, token: str, authorization_scheme: str = "Bearer") -> None:
        if not token:
            msg = "token cannot be empty"
            raise ValueError(msg)
        self.token = token
        self.authorization_scheme = authorization_scheme

    def sign_request(self, request: HttpRequest) -> HttpRequest:
        """Set the Authorization header on the request."""
        request.headers.set(
            _AUTHORIZATION_HEADER, f"{self.authorization_scheme} {self.token}"
        )
        return request


class BasicAuthenticationCredentials:
    """HTTP Basic credentials."""

    def __init__(
        self,
        user_name: str,
        password: str,
        authorization_scheme: str = "Basic",
    ) -> None:
        if not user_name:
            msg = "user_name cannot be empty"
            raise ValueError(msg)
        self.user_name = user_name
        self.password = password
        self.authorization_scheme = authorization_scheme

    def sign_request(self, request: HttpRequest) -> HttpRequest:
        """Set the Authorization header on the request."""
        raw = f"{self.user_name}:{self.password}".encode()
        encoded = base64.b64encode(raw).decode("ascii")
        request.headers.set(
            _AUTHORIZATION_HEADER, f"{self.authorization_scheme} {encoded}"
        )
        return request
