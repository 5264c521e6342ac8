"""
HTTPClient module for issuing authenticated requests to the GitLab API
"""

import time
import platform
import requests
from typing import Dict, Any, Optional, Callable
from dataclasses import dataclass, field

from . import __version__
from .connection_resolver import Connection


@dataclass
class APIRequest:
    """Represents a single physical API request"""
    url: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def full_url(self) -> str:
        """URL including the query string GET parameters are sent as"""
        if self.method.upper() != 'GET' or not self.parameters:
            return self.url
        prepared = requests.PreparedRequest()
        prepared.prepare_url(self.url, self.parameters)
        return prepared.url


def build_user_agent() -> str:
    """User-Agent identifying the client, package version and host runtime"""
    return (
        f"gitlab-api-adapter/{__version__} "
        f"python/{platform.python_version()} "
        f"requests/{requests.__version__}"
    )


class HTTPClient:
    """HTTP client with bearer authentication and edge error retries for PUT requests"""

    # Edge provider "unknown error" codes that PUT requests retry on
    EDGE_RETRY_STATUS_CODES = {520}

    def __init__(self, max_edge_retries: int = 10, edge_retry_delay: float = 2.0,
                 timeout: float = 30.0, sleep: Callable[[float], None] = time.sleep):
        self.max_edge_retries = max_edge_retries
        self.edge_retry_delay = edge_retry_delay
        self.timeout = timeout
        self.sleep = sleep
        self.session: Optional[requests.Session] = None

    @staticmethod
    def build_headers(connection: Connection) -> Dict[str, str]:
        return {
            'Authorization': f"Bearer {connection.token}",
            'User-Agent': build_user_agent(),
            'Accept': 'application/json'
        }

    def make_request(self, request: APIRequest, connection: Connection) -> requests.Response:
        """
        Make a single logical HTTP request

        PUT requests that return an edge 520 error are retried with a fixed delay
        until a different status is returned or the retries are used up.

        Args:
            request: APIRequest object containing request details
            connection: Resolved connection supplying the access token

        Returns:
            The requests.Response of the last attempt

        Raises:
            requests.exceptions.RequestException: On DNS, TLS, timeout or connection failures
        """
        if self.session is None:
            self.session = requests.Session()

        combined_headers = {**self.build_headers(connection), **request.headers}

        response = self._send(request, combined_headers)

        if request.method.upper() != 'PUT':
            return response

        retry_count = 0
        while response.status_code in self.EDGE_RETRY_STATUS_CODES and retry_count < self.max_edge_retries:
            retry_count += 1
            self.sleep(self.edge_retry_delay)
            response = self._send(request, combined_headers)

        return response

    def _send(self, request: APIRequest, headers: Dict[str, str]) -> requests.Response:
        method = request.method.upper()

        if method == 'GET':
            return self.session.get(
                request.url,
                params=request.parameters,
                headers=headers,
                timeout=self.timeout
            )

        if method == 'POST':
            return self.session.post(
                request.url,
                json=request.parameters,
                headers=headers,
                timeout=self.timeout
            )

        return self.session.request(
            method,
            request.url,
            json=request.parameters or None,
            headers=headers,
            timeout=self.timeout
        )

    def close_connection(self) -> None:
        """
        Close HTTP session and release resources
        """
        if self.session:
            self.session.close()
            self.session = None
