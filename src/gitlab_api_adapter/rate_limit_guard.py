"""
RateLimitGuard module for backing off when the GitLab API quota runs low
"""

import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Dict, Any

from .exceptions import RateLimitedError
from .response_normalizer import ResponseEnvelope


# Fraction of the quota remaining at which the guard starts cooling down
APPROACHING_THRESHOLD = 0.20

# Remaining request count at which the quota counts as exhausted
EXHAUSTED_REMAINING = 1

COOLDOWN_SECONDS = 10


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class RateLimitState:
    """Rate limit values parsed from a single response"""
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset: Optional[datetime] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, Any]) -> 'RateLimitState':
        """
        Parse RateLimit-* headers

        Args:
            headers: Case-insensitive header mapping

        Returns:
            RateLimitState; fields are None when headers are absent or not numeric
        """
        reset_epoch = _parse_int(headers.get('RateLimit-Reset'))
        reset = None
        if reset_epoch is not None:
            try:
                reset = datetime.fromtimestamp(reset_epoch, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                reset = None

        return cls(
            limit=_parse_int(headers.get('RateLimit-Limit')),
            remaining=_parse_int(headers.get('RateLimit-Remaining')),
            reset=reset
        )

    @property
    def usage_ratio(self) -> Optional[float]:
        """Fraction of the quota still available"""
        if self.remaining is None or not self.limit:
            return None
        return self.remaining / self.limit

    def seconds_until_reset(self, now: Optional[datetime] = None) -> Optional[int]:
        if self.reset is None:
            return None
        now = now or datetime.now(timezone.utc)
        return max(0, int((self.reset - now).total_seconds()))


class RateLimitGuard:
    """Applies a blocking cooldown when the quota is low and fails when it is exhausted"""

    def __init__(self, sleep: Callable[[float], None] = time.sleep,
                 approaching_threshold: float = APPROACHING_THRESHOLD,
                 exhausted_remaining: int = EXHAUSTED_REMAINING,
                 cooldown_seconds: float = COOLDOWN_SECONDS):
        self.sleep = sleep
        self.approaching_threshold = approaching_threshold
        self.exhausted_remaining = exhausted_remaining
        self.cooldown_seconds = cooldown_seconds
        self.logger = logging.getLogger(__name__)

    def check(self, envelope: ResponseEnvelope) -> RateLimitState:
        """
        Inspect the envelope's rate limit headers and react

        Args:
            envelope: Normalised response of the latest physical request

        Returns:
            The parsed RateLimitState

        Raises:
            RateLimitedError: If the remaining quota is exhausted
        """
        state = RateLimitState.from_headers(envelope.headers)
        metadata = self._build_metadata(envelope, state)

        if state.remaining is not None and state.remaining <= self.exhausted_remaining:
            message = (
                f"{envelope.method} {envelope.status.code} {envelope.url} - "
                f"API rate limit exhausted ({state.remaining} of {state.limit} requests remaining)"
            )
            self.logger.critical(message, extra={
                'event_type': 'gitlab-api-rate-limit-exhausted',
                'metadata': metadata
            })
            raise RateLimitedError(message, envelope.status.code, envelope.method, envelope.url)

        ratio = state.usage_ratio
        if ratio is not None and ratio <= self.approaching_threshold:
            self.logger.warning(
                f"{envelope.method} {envelope.status.code} {envelope.url} - "
                f"API rate limit approaching ({state.remaining} of {state.limit} requests remaining). "
                f"Pausing for {self.cooldown_seconds} seconds",
                extra={
                    'event_type': 'gitlab-api-rate-limit-approaching',
                    'metadata': metadata
                }
            )
            self.sleep(self.cooldown_seconds)

        return state

    def _build_metadata(self, envelope: ResponseEnvelope, state: RateLimitState) -> Dict[str, Any]:
        return {
            'api_endpoint': envelope.url,
            'api_method': envelope.method,
            'status_code': envelope.status.code,
            'rate_limit_limit': state.limit,
            'rate_limit_remaining': state.remaining,
            'rate_limit_observed': envelope.headers.get('RateLimit-Observed'),
            'rate_limit_reset_timestamp': state.reset.isoformat() if state.reset else None,
            'rate_limit_reset_datetime': envelope.headers.get('RateLimit-ResetTime'),
            'rate_limit_reset_secs_remaining': state.seconds_until_reset()
        }
