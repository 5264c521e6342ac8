"""
RequestExecutor module for running logical GitLab API calls end to end
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import requests

from .connection_resolver import Connection, ConnectionResolver
from .error_classifier import ErrorClassifier
from .http_client import HTTPClient, APIRequest
from .pagination_strategy import PaginationEngine, DEFAULT_PER_PAGE
from .rate_limit_guard import RateLimitGuard
from .response_log import ResponseLogger
from .response_normalizer import ResponseEnvelope, ResponseNormalizer


@dataclass
class RequestSpec:
    """A logical request as issued by the caller"""
    method: str
    uri: str
    query_or_body: Dict[str, Any] = field(default_factory=dict)


class RequestExecutor:
    """
    Orchestrates a logical API call

    Pipeline for every physical request:
    1. Send via HTTPClient (transport failures short-circuit)
    2. Normalise the response into a ResponseEnvelope
    3. Log the response
    4. Apply the rate limit guard
    5. Classify errors
    6. For GET requests, follow pagination cursors through the same steps
    """

    def __init__(
        self,
        http_client: Optional[HTTPClient] = None,
        connection_resolver: Optional[ConnectionResolver] = None,
        rate_limit_guard: Optional[RateLimitGuard] = None,
        pagination_engine: Optional[PaginationEngine] = None,
        response_logger: Optional[ResponseLogger] = None
    ):
        """
        Initialise RequestExecutor with dependency injection

        Args:
            http_client: Physical HTTP communication component
            connection_resolver: Connection validation component
            rate_limit_guard: Rate limit backoff component
            pagination_engine: Cursor pagination component
            response_logger: Logging sink for responses
        """
        self.http_client = http_client or HTTPClient()
        self.connection_resolver = connection_resolver or ConnectionResolver()
        self.rate_limit_guard = rate_limit_guard or RateLimitGuard()
        self.pagination_engine = pagination_engine or PaginationEngine()
        self.response_logger = response_logger or ResponseLogger()
        self.logger = logging.getLogger(__name__)

    def get(self, uri: str, query: Optional[Dict[str, Any]] = None,
            connection: Optional[Connection] = None, per_page: int = DEFAULT_PER_PAGE) -> ResponseEnvelope:
        """
        GET a resource, following pagination until every page is fetched

        Args:
            uri: URI with leading `/` after `/api/v4` (e.g. `/projects`)
            query: Optional query parameters
            connection: Resolved connection, or None for the default source
            per_page: Page size used unless `query` already sets `per_page`

        Returns:
            ResponseEnvelope; for paginated results `data` is the merged list
        """
        params = dict(query or {})
        params.setdefault('per_page', per_page)
        return self.execute(RequestSpec('GET', uri, params), connection)

    def post(self, uri: str, body: Optional[Dict[str, Any]] = None,
             connection: Optional[Connection] = None) -> ResponseEnvelope:
        """Create a resource with a JSON body"""
        return self.execute(RequestSpec('POST', uri, dict(body or {})), connection)

    def put(self, uri: str, body: Optional[Dict[str, Any]] = None,
            connection: Optional[Connection] = None) -> ResponseEnvelope:
        """Update a resource with a JSON body, retrying edge 520 errors"""
        return self.execute(RequestSpec('PUT', uri, dict(body or {})), connection)

    def delete(self, uri: str, body: Optional[Dict[str, Any]] = None,
               connection: Optional[Connection] = None) -> ResponseEnvelope:
        """Delete a resource, with an optional JSON body"""
        return self.execute(RequestSpec('DELETE', uri, dict(body or {})), connection)

    def execute(self, spec: RequestSpec, connection: Optional[Connection] = None) -> ResponseEnvelope:
        """
        Run a RequestSpec through the full pipeline

        Raises:
            ConfigurationError: If the connection is invalid (before any request is sent)
            RateLimitedError: If the API quota is exhausted
            GitlabApiError subclass: For failed responses when exceptions are enabled
        """
        resolved = self.connection_resolver.resolve(connection)
        url = resolved.build_url(spec.uri)
        request = APIRequest(url=url, parameters=spec.query_or_body, method=spec.method)

        try:
            response, envelope = self._send_and_check(request, resolved)
        except requests.exceptions.RequestException as e:
            self.response_logger.log_transport_failure(spec.method, url, e, resolved.connection_key)
            return ErrorClassifier.classify_transport_failure(
                spec.method, url, e, resolved.exceptions_enabled
            )

        if spec.method.upper() != 'GET' or envelope.status.failed:
            return envelope

        if not self.pagination_engine.has_next_page(envelope):
            return envelope

        self.logger.info(f"Paginated response for {url}, fetching remaining pages")

        def fetch_page(page_url: str) -> Tuple[requests.Response, ResponseEnvelope]:
            # Cursor URLs already carry the query, so no parameters are merged
            return self._send_and_check(APIRequest(url=page_url, method='GET'), resolved)

        try:
            return self.pagination_engine.paginate(response, envelope, fetch_page)
        except requests.exceptions.RequestException as e:
            failed_url = e.request.url if e.request is not None else url
            self.response_logger.log_transport_failure('GET', failed_url, e, resolved.connection_key)
            return ErrorClassifier.classify_transport_failure(
                'GET', failed_url, e, resolved.exceptions_enabled
            )

    def _send_and_check(self, request: APIRequest,
                        connection: Connection) -> Tuple[requests.Response, ResponseEnvelope]:
        """Send one physical request and run it through normalise, log, guard and classify"""
        response = self.http_client.make_request(request, connection)

        envelope = ResponseNormalizer.normalize(response, method=request.method, url=request.full_url)
        self.response_logger.log_response(envelope, request.parameters, connection.connection_key)
        self.rate_limit_guard.check(envelope)

        return response, ErrorClassifier.classify(envelope, connection.exceptions_enabled)

    def close(self) -> None:
        self.http_client.close_connection()

    def __enter__(self) -> 'RequestExecutor':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
