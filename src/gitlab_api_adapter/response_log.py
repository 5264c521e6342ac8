"""
ResponseLog module for structured logging of GitLab API calls
"""

import sys
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .response_normalizer import ResponseEnvelope


# status code -> (log level, event type)
ERROR_EVENTS = {
    400: (logging.WARNING, 'gitlab-api-bad-request-error'),
    401: (logging.CRITICAL, 'gitlab-api-unauthorized-error'),
    403: (logging.CRITICAL, 'gitlab-api-forbidden-error'),
    404: (logging.WARNING, 'gitlab-api-not-found-error'),
    405: (logging.WARNING, 'gitlab-api-method-not-allowed-error'),
    409: (logging.WARNING, 'gitlab-api-conflict-error'),
    412: (logging.WARNING, 'gitlab-api-precondition-failed-error'),
    422: (logging.WARNING, 'gitlab-api-unprocessable-error'),
    429: (logging.ERROR, 'gitlab-api-rate-limit-error'),
}

RATE_LIMIT_HEADERS = {
    'rate_limit_observed': 'RateLimit-Observed',
    'rate_limit_remaining': 'RateLimit-Remaining',
    'rate_limit_reset_timestamp': 'RateLimit-Reset',
    'rate_limit_reset_datetime': 'RateLimit-ResetTime',
    'rate_limit_limit': 'RateLimit-Limit',
}

DEFAULT_EXCLUDED_KEYS = {
    'get': ['key', 'password'],
    'post': ['content'],
    'put': ['content'],
    'delete': [],
}

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class RequestDataLogPolicy:
    """Per-method switch and excluded keys for logging request payloads"""
    enabled: Dict[str, bool] = field(default_factory=dict)
    excluded: Dict[str, List[str]] = field(
        default_factory=lambda: {method: list(keys) for method, keys in DEFAULT_EXCLUDED_KEYS.items()}
    )

    @classmethod
    def from_config(cls, logging_config: Dict[str, Any]) -> 'RequestDataLogPolicy':
        """Build a policy from the [logging.request_data.<method>] tables"""
        policy = cls()
        for method, settings in logging_config.get('request_data', {}).items():
            method = method.lower()
            policy.enabled[method] = bool(settings.get('enabled', True))
            if 'excluded' in settings:
                policy.excluded[method] = list(settings['excluded'])
        return policy

    def filter(self, method: str, request_data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Return the loggable part of the request data, or None if logging is disabled"""
        method = method.lower()
        if not self.enabled.get(method, True) or request_data is None:
            return None
        excluded = set(self.excluded.get(method, []))
        return {key: value for key, value in request_data.items() if key not in excluded}


class ResponseLogger:
    """Logging sink for API responses and pipeline events"""

    def __init__(self, logger: Optional[logging.Logger] = None,
                 request_data_policy: Optional[RequestDataLogPolicy] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.request_data_policy = request_data_policy or RequestDataLogPolicy()

    def log_event(self, event_type: str, level: int, message: str,
                  metadata: Optional[Dict[str, Any]] = None) -> None:
        self.logger.log(level, message, extra={
            'event_type': event_type,
            'metadata': metadata or {}
        })

    def log_response(self, envelope: ResponseEnvelope,
                     request_data: Optional[Dict[str, Any]] = None,
                     connection_key: Optional[str] = None) -> None:
        """
        Log a physical API response at a level matching its status

        Args:
            envelope: Normalised response
            request_data: Query parameters or body that was sent
            connection_key: Name of the connection used for the request
        """
        code = envelope.status.code
        message = f"{envelope.method} {code} {envelope.url}"

        metadata: Dict[str, Any] = {
            'api_endpoint': envelope.url,
            'api_method': envelope.method,
            'connection_key': connection_key,
            'status_code': code,
        }

        loggable_data = self.request_data_policy.filter(envelope.method, request_data)
        if loggable_data is not None:
            metadata['request_data'] = loggable_data

        if envelope.status.successful:
            self.log_event('gitlab-api-response-info', logging.INFO, message, metadata)
            return

        if code in ERROR_EVENTS:
            level, event_type = ERROR_EVENTS[code]
        elif envelope.status.server_error:
            level, event_type = logging.CRITICAL, 'gitlab-api-response-server-error'
        else:
            level, event_type = logging.CRITICAL, 'gitlab-api-response-unknown-error'

        if code == 429:
            for key, header in RATE_LIMIT_HEADERS.items():
                metadata[key] = envelope.headers.get(header)

        self.log_event(event_type, level, message, metadata)

    def log_transport_failure(self, method: str, url: str, error: Exception,
                              connection_key: Optional[str] = None) -> None:
        self.log_event(
            'gitlab-api-transport-error',
            logging.ERROR,
            f"{method.upper()} {url} - {type(error).__name__}: {error}",
            {
                'api_endpoint': url,
                'api_method': method.upper(),
                'connection_key': connection_key,
                'error_type': type(error).__name__,
            }
        )


def setup_logging(level: str = 'INFO', log_file: Optional[Path] = None,
                  log_format: str = DEFAULT_LOG_FORMAT) -> None:
    """
    Configure console and optional file logging for the adapter

    Args:
        level: Logging level name
        log_file: Optional path of a log file; parent directories are created
        log_format: Format string for log records
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        handlers=handlers,
        force=True
    )
