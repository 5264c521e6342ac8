"""
GitLab REST API adapter
Resilient request pipeline with cursor pagination, rate limit backoff and uniform response envelopes
"""

__version__ = "1.0.0"

from .exceptions import (
    ErrorKind, GitlabApiError, ConfigurationError, EnvironmentError, TransportError,
    BadRequestError, UnauthorizedError, ForbiddenError, NotFoundError, MethodNotAllowedError,
    ConflictError, PreconditionFailedError, UnprocessableError, RateLimitedError,
    ServerError, ServiceUnavailableError, EdgeProviderError, UnknownApiError
)
from .config_loader import ConfigLoader, AdapterConfig, ConnectionSettings
from .connection_resolver import Connection, ConnectionResolver
from .response_normalizer import ResponseNormalizer, ResponseEnvelope, StatusInfo
from .rate_limit_guard import RateLimitGuard, RateLimitState
from .error_classifier import ErrorClassifier
from .pagination_strategy import PaginationEngine, PaginationFactory
from .response_log import ResponseLogger, RequestDataLogPolicy, setup_logging
from .http_client import HTTPClient, APIRequest
from .request_executor import RequestExecutor, RequestSpec
from .api_client import ApiClient

__all__ = [
    'ErrorKind',
    'GitlabApiError',
    'ConfigurationError',
    'EnvironmentError',
    'TransportError',
    'BadRequestError',
    'UnauthorizedError',
    'ForbiddenError',
    'NotFoundError',
    'MethodNotAllowedError',
    'ConflictError',
    'PreconditionFailedError',
    'UnprocessableError',
    'RateLimitedError',
    'ServerError',
    'ServiceUnavailableError',
    'EdgeProviderError',
    'UnknownApiError',
    'ConfigLoader',
    'AdapterConfig',
    'ConnectionSettings',
    'Connection',
    'ConnectionResolver',
    'ResponseNormalizer',
    'ResponseEnvelope',
    'StatusInfo',
    'RateLimitGuard',
    'RateLimitState',
    'ErrorClassifier',
    'PaginationEngine',
    'PaginationFactory',
    'ResponseLogger',
    'RequestDataLogPolicy',
    'setup_logging',
    'HTTPClient',
    'APIRequest',
    'RequestExecutor',
    'RequestSpec',
    'ApiClient'
]
