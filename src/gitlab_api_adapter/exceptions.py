"""
Exception hierarchy for GitLab API request failures
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of a failed logical call"""
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    UNPROCESSABLE = "unprocessable"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    EDGE_PROVIDER_ERROR = "edge_provider_error"
    UNKNOWN = "unknown"


class GitlabApiError(Exception):
    """Base class for all errors raised by the adapter"""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, status_code: Optional[int] = None,
                 method: Optional[str] = None, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.method = method
        self.url = url


class ConfigurationError(GitlabApiError):
    """Raised when the connection or configuration file is invalid or incomplete"""
    kind = ErrorKind.CONFIGURATION


class EnvironmentError(ConfigurationError):
    """Raised when required environment variables are missing"""
    pass


class TransportError(GitlabApiError):
    """Raised when the request never produced an HTTP response (DNS, TLS, timeout)"""
    kind = ErrorKind.TRANSPORT


class BadRequestError(GitlabApiError):
    kind = ErrorKind.BAD_REQUEST


class UnauthorizedError(GitlabApiError):
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(GitlabApiError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(GitlabApiError):
    kind = ErrorKind.NOT_FOUND


class MethodNotAllowedError(GitlabApiError):
    kind = ErrorKind.METHOD_NOT_ALLOWED


class ConflictError(GitlabApiError):
    kind = ErrorKind.CONFLICT


class PreconditionFailedError(GitlabApiError):
    kind = ErrorKind.PRECONDITION_FAILED


class UnprocessableError(GitlabApiError):
    kind = ErrorKind.UNPROCESSABLE


class RateLimitedError(GitlabApiError):
    """Raised when the API quota is exhausted, regardless of the exceptions setting"""
    kind = ErrorKind.RATE_LIMITED


class ServerError(GitlabApiError):
    kind = ErrorKind.SERVER_ERROR


class ServiceUnavailableError(ServerError):
    kind = ErrorKind.SERVICE_UNAVAILABLE


class EdgeProviderError(ServerError):
    """Raised for errors generated by an intermediary (CDN/edge proxy) rather than GitLab"""
    kind = ErrorKind.EDGE_PROVIDER_ERROR


class UnknownApiError(GitlabApiError):
    """Raised for non-successful status codes without a dedicated error class"""
    kind = ErrorKind.UNKNOWN
