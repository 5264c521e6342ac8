"""
ErrorClassifier module for mapping API status codes to typed errors
"""

import json
from typing import Any, Dict, Optional, Type

from .exceptions import (
    GitlabApiError, TransportError, BadRequestError, UnauthorizedError, ForbiddenError,
    NotFoundError, MethodNotAllowedError, ConflictError, PreconditionFailedError,
    UnprocessableError, RateLimitedError, ServerError, ServiceUnavailableError,
    EdgeProviderError, UnknownApiError
)
from .response_normalizer import ResponseEnvelope, ResponseNormalizer


STATUS_ERRORS: Dict[int, Type[GitlabApiError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    405: MethodNotAllowedError,
    409: ConflictError,
    412: PreconditionFailedError,
    422: UnprocessableError,
    429: RateLimitedError,
    500: ServerError,
    503: ServiceUnavailableError
}

# Cloudflare edge error band (520 Unknown Error ... 527 Railgun, 530 origin DNS)
EDGE_PROVIDER_CODES = frozenset(range(520, 528)) | {530}

UNAUTHORIZED_GUIDANCE = (
    "The access token is invalid, expired or revoked. Check the token configured "
    "for this connection and that it has the scopes the endpoint requires."
)

# Body keys GitLab uses for error details, in order of preference
SERVER_MESSAGE_KEYS = ('message', 'error', 'error_description')


def error_class_for(code: int) -> Type[GitlabApiError]:
    """Return the exception class for a non-successful status code"""
    if code in STATUS_ERRORS:
        return STATUS_ERRORS[code]
    if code in EDGE_PROVIDER_CODES:
        return EdgeProviderError
    return UnknownApiError


def extract_server_message(data: Any) -> Optional[str]:
    """Pull the server supplied error message out of a response body"""
    if isinstance(data, str):
        return data.strip() or None

    if not isinstance(data, dict):
        return None

    for key in SERVER_MESSAGE_KEYS:
        value = data.get(key)
        if value in (None, '', [], {}):
            continue
        if isinstance(value, (dict, list)):
            return json.dumps(value, sort_keys=True)
        return str(value)

    return None


def build_error_message(envelope: ResponseEnvelope) -> str:
    """Format the `{METHOD} {CODE} {URL}[ - {serverMessage}]` message"""
    message = f"{envelope.method} {envelope.status.code} {envelope.url}"

    if envelope.status.code == 401:
        return f"{message} - {UNAUTHORIZED_GUIDANCE}"

    server_message = extract_server_message(envelope.data)
    if server_message:
        message = f"{message} - {server_message}"
    return message


class ErrorClassifier:
    """Decides whether a response is returned to the caller or raised"""

    @staticmethod
    def classify(envelope: ResponseEnvelope, exceptions_enabled: bool) -> ResponseEnvelope:
        """
        Return the envelope, or raise a typed error when exceptions are enabled

        Args:
            envelope: Normalised response
            exceptions_enabled: Connection setting controlling exceptions for 4xx/5xx

        Returns:
            The unchanged envelope

        Raises:
            GitlabApiError subclass: For non-successful responses when exceptions are enabled
        """
        if not exceptions_enabled or envelope.status.successful:
            return envelope

        code = envelope.status.code
        error_class = error_class_for(code)
        raise error_class(build_error_message(envelope), code, envelope.method, envelope.url)

    @staticmethod
    def classify_transport_failure(method: str, url: str, error: Exception,
                                   exceptions_enabled: bool) -> ResponseEnvelope:
        """
        Handle a request that produced no HTTP response

        Returns:
            A failed envelope when exceptions are disabled

        Raises:
            TransportError: When exceptions are enabled, chained to the original error
        """
        if exceptions_enabled:
            raise TransportError(
                f"{method.upper()} {url} - {type(error).__name__}: {error}",
                None, method.upper(), url
            ) from error

        return ResponseNormalizer.transport_failure(method, url, error)
