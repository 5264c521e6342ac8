"""
Test suite for RateLimitGuard component
Following TDD approach with AAA pattern and descriptive naming
"""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import Mock

from gitlab_api_adapter.exceptions import RateLimitedError, ErrorKind
from gitlab_api_adapter.rate_limit_guard import RateLimitGuard, RateLimitState
from gitlab_api_adapter.response_normalizer import ResponseNormalizer


def envelope_with_headers(response_factory, headers, status_code=200):
    response = response_factory(status_code, [], headers=headers)
    return ResponseNormalizer.normalize(response, method='GET',
                                        url='https://gitlab.example.com/api/v4/projects')


class TestRateLimitState:
    """Test suite for parsing rate limit headers"""

    def test_from_headers_with_all_headers_parses_values(self):
        """
        Test that limit, remaining and reset are parsed
        """
        # Arrange
        headers = {'RateLimit-Limit': '2000', 'RateLimit-Remaining': '1998',
                   'RateLimit-Reset': '1635870577'}

        # Act
        state = RateLimitState.from_headers(headers)

        # Assert
        assert state.limit == 2000
        assert state.remaining == 1998
        assert state.reset == datetime.fromtimestamp(1635870577, tz=timezone.utc)

    def test_from_headers_with_missing_headers_returns_empty_state(self):
        """
        Test that absent headers produce an all-None state
        """
        # Act
        state = RateLimitState.from_headers({})

        # Assert
        assert state == RateLimitState()
        assert state.usage_ratio is None

    def test_from_headers_with_non_numeric_values_treats_them_as_absent(self):
        """
        Test that malformed header values are ignored
        """
        # Act
        state = RateLimitState.from_headers({'RateLimit-Limit': 'unlimited', 'RateLimit-Remaining': '5'})

        # Assert
        assert state.limit is None
        assert state.remaining == 5

    def test_from_headers_with_out_of_range_reset_treats_it_as_absent(self):
        """
        Test that a reset timestamp beyond the platform datetime range is ignored
        """
        # Act
        state = RateLimitState.from_headers({'RateLimit-Reset': '99999999999999999', 'RateLimit-Remaining': '50'})

        # Assert
        assert state.reset is None
        assert state.remaining == 50
        assert state.seconds_until_reset() is None

    def test_seconds_until_reset_with_future_reset_returns_difference(self):
        """
        Test that the remaining cooldown before the quota resets is calculated
        """
        # Arrange
        now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        state = RateLimitState(limit=100, remaining=10, reset=now + timedelta(seconds=45))

        # Act & Assert
        assert state.seconds_until_reset(now) == 45
        assert state.seconds_until_reset(now + timedelta(minutes=5)) == 0


class TestRateLimitGuard:
    """Test suite for rate limit backoff behaviour"""

    def test_check_with_plenty_of_quota_does_not_sleep(self, response_factory, mock_sleep):
        """
        Test that the guard is a no-op with a healthy quota
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory,
                                         {'RateLimit-Limit': '2000', 'RateLimit-Remaining': '1998'})

        # Act
        state = guard.check(envelope)

        # Assert
        mock_sleep.assert_not_called()
        assert state.remaining == 1998

    def test_check_with_fifteen_percent_remaining_sleeps_once_without_raising(self, response_factory, mock_sleep):
        """
        Test that approaching the limit triggers a single 10 second cooldown
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory,
                                         {'RateLimit-Limit': '100', 'RateLimit-Remaining': '15'})

        # Act
        guard.check(envelope)

        # Assert
        mock_sleep.assert_called_once_with(10)

    def test_check_with_exactly_twenty_percent_remaining_sleeps(self, response_factory, mock_sleep):
        """
        Test that the approaching threshold is inclusive
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory,
                                         {'RateLimit-Limit': '100', 'RateLimit-Remaining': '20'})

        # Act
        guard.check(envelope)

        # Assert
        mock_sleep.assert_called_once()

    def test_check_with_one_remaining_raises_rate_limited_error(self, response_factory, mock_sleep):
        """
        Test that an exhausted quota is always fatal
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory,
                                         {'RateLimit-Limit': '100', 'RateLimit-Remaining': '1'})

        # Act & Assert
        with pytest.raises(RateLimitedError) as exc_info:
            guard.check(envelope)

        assert exc_info.value.kind is ErrorKind.RATE_LIMITED
        assert 'https://gitlab.example.com/api/v4/projects' in str(exc_info.value)
        mock_sleep.assert_not_called()

    def test_check_with_zero_remaining_and_no_limit_header_raises(self, response_factory, mock_sleep):
        """
        Test that exhaustion is detected from the remaining count alone
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory, {'ratelimit-remaining': '0'}, status_code=429)

        # Act & Assert
        with pytest.raises(RateLimitedError):
            guard.check(envelope)

    def test_check_with_no_rate_limit_headers_is_noop(self, response_factory, mock_sleep):
        """
        Test that self-managed instances without rate limit headers are not throttled
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory, {})

        # Act
        state = guard.check(envelope)

        # Assert
        mock_sleep.assert_not_called()
        assert state.remaining is None

    def test_check_with_out_of_range_reset_returns_state_without_raising(self, response_factory, mock_sleep):
        """
        Test that an unusable reset header does not fail an otherwise successful response
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory, {
            'RateLimit-Limit': '2000', 'RateLimit-Remaining': '2', 'RateLimit-Reset': '99999999999999999'
        })

        # Act
        state = guard.check(envelope)

        # Assert
        assert state.reset is None
        mock_sleep.assert_called_once_with(10)

    def test_check_with_custom_thresholds_uses_configured_values(self, response_factory, mock_sleep):
        """
        Test that thresholds and cooldown can be tuned
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep, approaching_threshold=0.5, cooldown_seconds=3)
        envelope = envelope_with_headers(response_factory,
                                         {'RateLimit-Limit': '100', 'RateLimit-Remaining': '40'})

        # Act
        guard.check(envelope)

        # Assert
        mock_sleep.assert_called_once_with(3)

    def test_check_with_low_quota_logs_warning(self, response_factory, mock_sleep, caplog):
        """
        Test that the cooldown is logged as a warning
        """
        # Arrange
        guard = RateLimitGuard(sleep=mock_sleep)
        envelope = envelope_with_headers(response_factory,
                                         {'RateLimit-Limit': '100', 'RateLimit-Remaining': '10'})

        # Act
        with caplog.at_level('WARNING', logger='gitlab_api_adapter.rate_limit_guard'):
            guard.check(envelope)

        # Assert
        assert any(record.event_type == 'gitlab-api-rate-limit-approaching' for record in caplog.records)
