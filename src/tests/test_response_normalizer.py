"""
Test suite for ResponseNormalizer component
Following TDD approach with AAA pattern and descriptive naming
"""

import pytest
from gitlab_api_adapter.response_normalizer import (
    ResponseNormalizer, ResponseEnvelope, StatusInfo, normalize_headers, TRANSPORT_FAILURE_CODE
)


class TestStatusInfo:
    """Test suite for status derivation from HTTP status codes"""

    @pytest.mark.parametrize("code", range(200, 600))
    def test_from_code_with_any_status_derives_consistent_flags(self, code):
        """
        Test that every status flag follows from the code alone
        """
        # Act
        status = StatusInfo.from_code(code)

        # Assert
        assert status.code == code
        assert status.ok == (code == 200)
        assert status.successful == (200 <= code < 300)
        assert status.client_error == (400 <= code < 500)
        assert status.server_error == (code >= 500)
        assert status.successful != status.failed

    def test_to_dict_with_created_status_uses_compatibility_keys(self):
        """
        Test that the status renders with the camelCase keys callers pattern-match on
        """
        # Act
        result = StatusInfo.from_code(201).to_dict()

        # Assert
        assert result == {
            'code': 201,
            'ok': False,
            'successful': True,
            'failed': False,
            'clientError': False,
            'serverError': False
        }


class TestResponseNormalizer:
    """Test suite for converting raw responses into envelopes"""

    def test_normalize_with_json_object_returns_decoded_data(self, response_factory):
        """
        Test that a JSON body is decoded into the envelope data
        """
        # Arrange
        response = response_factory(200, {'id': 42, 'name': 'adapter'},
                                    headers={'X-Request-Id': 'abc'})

        # Act
        envelope = ResponseNormalizer.normalize(response, method='get',
                                                url='https://gitlab.example.com/api/v4/projects/42')

        # Assert
        assert isinstance(envelope, ResponseEnvelope)
        assert envelope.data == {'id': 42, 'name': 'adapter'}
        assert envelope.status.ok is True
        assert envelope.method == 'GET'
        assert envelope.url == 'https://gitlab.example.com/api/v4/projects/42'

    def test_normalize_with_empty_body_returns_none_data(self, response_factory):
        """
        Test that a 204 No Content response has no data
        """
        # Arrange
        response = response_factory(204)

        # Act
        envelope = ResponseNormalizer.normalize(response, method='DELETE')

        # Assert
        assert envelope.data is None
        assert envelope.status.successful is True

    def test_normalize_with_non_json_body_returns_text(self, response_factory):
        """
        Test that non-JSON bodies such as edge error pages are kept as text
        """
        # Arrange
        response = response_factory(520, text='<html>Web server is returning an unknown error</html>')

        # Act
        envelope = ResponseNormalizer.normalize(response, method='PUT')

        # Assert
        assert envelope.data == '<html>Web server is returning an unknown error</html>'
        assert envelope.status.server_error is True

    def test_normalize_with_paginated_data_replaces_body(self, response_factory):
        """
        Test that attached pagination data takes precedence over the last page's body
        """
        # Arrange
        response = response_factory(200, [{'id': 3}])
        merged = [{'id': 1}, {'id': 2}, {'id': 3}]

        # Act
        envelope = ResponseNormalizer.normalize(response, paginated_data=merged, page_count=2)

        # Assert
        assert envelope.data == merged
        assert envelope.page_count == 2

    def test_normalize_with_mixed_case_headers_allows_case_insensitive_lookup(self, response_factory):
        """
        Test that header lookups ignore case
        """
        # Arrange
        response = response_factory(200, [], headers={'ratelimit-remaining': '1998'})

        # Act
        envelope = ResponseNormalizer.normalize(response)

        # Assert
        assert envelope.headers['RateLimit-Remaining'] == '1998'
        assert envelope.headers['RATELIMIT-REMAINING'] == '1998'

    def test_normalize_headers_with_list_values_collapses_single_values(self):
        """
        Test that single value lists become strings and multi value lists are kept
        """
        # Arrange
        raw_headers = {
            'Content-Type': ['application/json'],
            'Set-Cookie': ['a=1', 'b=2'],
            'X-Total': 250
        }

        # Act
        headers = normalize_headers(raw_headers)

        # Assert
        assert headers['content-type'] == 'application/json'
        assert headers['set-cookie'] == ['a=1', 'b=2']
        assert headers['x-total'] == '250'

    def test_transport_failure_returns_failed_envelope_with_zero_code(self):
        """
        Test that transport failures are represented as failed envelopes
        """
        # Act
        envelope = ResponseNormalizer.transport_failure(
            'get', 'https://gitlab.example.com/api/v4/projects', ConnectionError('DNS lookup failed')
        )

        # Assert
        assert envelope.status.code == TRANSPORT_FAILURE_CODE
        assert envelope.status.failed is True
        assert envelope.status.client_error is False
        assert envelope.status.server_error is False
        assert envelope.data['message'] == 'DNS lookup failed'
        assert envelope.method == 'GET'

    def test_to_dict_returns_envelope_surface(self, response_factory):
        """
        Test that the envelope renders as data, headers and status
        """
        # Arrange
        response = response_factory(404, {'message': '404 Project Not Found'})
        envelope = ResponseNormalizer.normalize(response)

        # Act
        result = envelope.to_dict()

        # Assert
        assert set(result.keys()) == {'data', 'headers', 'status'}
        assert result['status']['code'] == 404
        assert result['status']['clientError'] is True
