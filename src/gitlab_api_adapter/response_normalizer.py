"""
ResponseNormalizer module for converting HTTP responses into a uniform envelope
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict


# Sentinel for "no paginated data attached", since None is a valid JSON body
NOT_PAGINATED = object()

# Status code used for envelopes built from transport failures (no HTTP response)
TRANSPORT_FAILURE_CODE = 0


@dataclass(frozen=True)
class StatusInfo:
    """Status booleans, all derived from the status code"""
    code: int
    ok: bool
    successful: bool
    failed: bool
    client_error: bool
    server_error: bool

    @classmethod
    def from_code(cls, code: int) -> 'StatusInfo':
        successful = 200 <= code < 300
        return cls(
            code=code,
            ok=code == 200,
            successful=successful,
            failed=not successful,
            client_error=400 <= code < 500,
            server_error=code >= 500
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'ok': self.ok,
            'successful': self.successful,
            'failed': self.failed,
            'clientError': self.client_error,
            'serverError': self.server_error
        }


@dataclass
class ResponseEnvelope:
    """Standardised result of a physical or logical API call"""
    data: Any
    headers: CaseInsensitiveDict
    status: StatusInfo
    method: str = "GET"
    url: str = ""
    page_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data': self.data,
            'headers': dict(self.headers),
            'status': self.status.to_dict()
        }


def normalize_headers(raw_headers: Optional[Mapping[str, Any]]) -> CaseInsensitiveDict:
    """
    Build a case-insensitive header map

    Multi-value headers given as lists keep all values; single element
    lists collapse to a plain string.
    """
    headers: CaseInsensitiveDict = CaseInsensitiveDict()
    if not raw_headers:
        return headers

    for name, value in raw_headers.items():
        if isinstance(value, (list, tuple)):
            values = [str(v) for v in value]
            headers[name] = values[0] if len(values) == 1 else values
        else:
            headers[name] = str(value)

    return headers


def decode_body(response: requests.Response) -> Any:
    """Decode the response body as JSON, falling back to text for non-JSON bodies"""
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        return response.text


class ResponseNormalizer:
    """Converts transport responses to ResponseEnvelope objects"""

    @staticmethod
    def normalize(response: requests.Response, method: str = "GET", url: Optional[str] = None,
                  paginated_data: Any = NOT_PAGINATED, page_count: int = 1) -> ResponseEnvelope:
        """
        Convert a raw response into a ResponseEnvelope

        Args:
            response: Response returned by the transport
            method: HTTP method of the request
            url: URL that was requested, defaults to the response URL
            paginated_data: Accumulated data from every page; replaces the body when attached
            page_count: Number of physical pages represented by the envelope

        Returns:
            ResponseEnvelope with data, headers and derived status
        """
        if paginated_data is NOT_PAGINATED:
            data = decode_body(response)
        else:
            data = paginated_data

        return ResponseEnvelope(
            data=data,
            headers=normalize_headers(response.headers),
            status=StatusInfo.from_code(response.status_code),
            method=method.upper(),
            url=url or response.url or "",
            page_count=page_count
        )

    @staticmethod
    def transport_failure(method: str, url: str, error: Exception) -> ResponseEnvelope:
        """Build the failed envelope returned when no HTTP response was received"""
        return ResponseEnvelope(
            data={'message': str(error), 'error': type(error).__name__},
            headers=CaseInsensitiveDict(),
            status=StatusInfo.from_code(TRANSPORT_FAILURE_CODE),
            method=method.upper(),
            url=url
        )
