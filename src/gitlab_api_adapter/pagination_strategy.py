"""
PaginationStrategy module for following GitLab paginated list responses
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Tuple
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

import requests
from requests.utils import parse_header_links

from .response_normalizer import ResponseEnvelope, ResponseNormalizer


# Page size requested when the caller does not set one (GitLab's own default is 20)
DEFAULT_PER_PAGE = 100

# Fetches one page by URL and returns the raw response with its checked envelope
PageFetcher = Callable[[str], Tuple[requests.Response, ResponseEnvelope]]


class PaginationState(Enum):
    FETCHING = "fetching"
    DONE = "done"


class PaginationStrategy(Protocol):
    """Protocol for different pagination strategies"""

    def get_next_page_url(self, envelope: ResponseEnvelope) -> Optional[str]:
        """Return the fully qualified URL of the next page, or None if no more pages"""
        ...


class LinkHeaderPagination:
    """Cursor pagination using the `Link: <...>; rel="next"` header"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.rel = config.get('rel', 'next')

    def get_next_page_url(self, envelope: ResponseEnvelope) -> Optional[str]:
        link_header = envelope.headers.get('Link')
        if not link_header:
            return None

        if isinstance(link_header, list):
            link_header = ', '.join(link_header)

        for link in parse_header_links(link_header):
            if link.get('rel') == self.rel and link.get('url'):
                return link['url']

        return None


class NextPageHeaderPagination:
    """Offset pagination using the `X-Next-Page` header, for proxies that strip `Link`"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.page_param = config.get('page_param', 'page')
        self.next_page_header = config.get('next_page_header', 'X-Next-Page')

    def get_next_page_url(self, envelope: ResponseEnvelope) -> Optional[str]:
        next_page = envelope.headers.get(self.next_page_header)
        if isinstance(next_page, list):
            next_page = next_page[0] if next_page else None
        if not next_page or not str(next_page).strip():
            return None

        scheme, netloc, path, query, fragment = urlsplit(envelope.url)
        params = [(key, value) for key, value in parse_qsl(query, keep_blank_values=True)
                  if key != self.page_param]
        params.append((self.page_param, str(next_page).strip()))

        return urlunsplit((scheme, netloc, path, urlencode(params), fragment))


class PaginationFactory:
    """Factory for creating appropriate pagination strategy based on config"""

    STRATEGIES = {
        'link_header': LinkHeaderPagination,
        'next_page_header': NextPageHeaderPagination
    }

    @classmethod
    def create_strategy(cls, pagination_config: Optional[Dict[str, Any]] = None) -> PaginationStrategy:
        """Create pagination strategy instance based on configuration"""
        pagination_config = pagination_config or {}
        strategy_type = pagination_config.get('strategy', 'link_header')

        if strategy_type not in cls.STRATEGIES:
            raise ValueError(f"Unsupported pagination strategy: {strategy_type}")

        strategy_class = cls.STRATEGIES[strategy_type]
        return strategy_class(pagination_config)


class PaginationEngine:
    """Follows next-page cursors until exhausted, accumulating every page's data in order"""

    def __init__(self, strategy: Optional[PaginationStrategy] = None):
        self.strategy = strategy or LinkHeaderPagination()
        self.logger = logging.getLogger(__name__)

    def has_next_page(self, envelope: ResponseEnvelope) -> bool:
        return self.strategy.get_next_page_url(envelope) is not None

    def paginate(self, first_response: requests.Response, first_envelope: ResponseEnvelope,
                 fetch_page: PageFetcher) -> ResponseEnvelope:
        """
        Fetch every remaining page and merge the results

        Args:
            first_response: Raw response of the first page
            first_envelope: Checked envelope of the first page
            fetch_page: Callable issuing a GET for a page URL

        Returns:
            Envelope whose data is the flattened list of all pages and whose
            headers and status come from the last page
        """
        accumulated: List[Any] = []
        self._append_page(accumulated, first_envelope.data)

        seen_urls: Set[str] = {first_envelope.url}
        last_response, last_envelope = first_response, first_envelope
        page_count = 1
        state = PaginationState.FETCHING

        while state is PaginationState.FETCHING:
            cursor = self.strategy.get_next_page_url(last_envelope)

            if cursor is None:
                state = PaginationState.DONE
                continue

            if cursor in seen_urls:
                self.logger.warning(
                    f"Pagination cursor repeated after {page_count} pages, stopping: {cursor}"
                )
                state = PaginationState.DONE
                continue

            seen_urls.add(cursor)
            last_response, last_envelope = fetch_page(cursor)
            page_count += 1

            if last_envelope.status.failed:
                self.logger.error(
                    f"Page {page_count} failed with status {last_envelope.status.code}, "
                    f"returning {len(accumulated)} records from earlier pages"
                )
                state = PaginationState.DONE
                continue

            self._append_page(accumulated, last_envelope.data)

            self.logger.debug(f"Fetched page {page_count} ({len(accumulated)} records so far)")

        return ResponseNormalizer.normalize(
            last_response,
            method=first_envelope.method,
            url=first_envelope.url,
            paginated_data=accumulated,
            page_count=page_count
        )

    @staticmethod
    def _append_page(accumulated: List[Any], page_data: Any) -> None:
        if isinstance(page_data, list):
            accumulated.extend(page_data)
        elif page_data is not None:
            accumulated.append(page_data)
