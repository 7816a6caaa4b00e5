"""
Tests for the profile API HTTP client.
"""

from unittest.mock import MagicMock

import pytest
import requests

from app.auth.service import AuthServiceError, MISSING_TOKEN_MESSAGE
from app.client.api import NETWORK_ERROR_MESSAGE, STATUS_MESSAGES, ApiClientError, RecipeApiClient


def _response(status, body=None, headers=None):
    response = MagicMock(name=f'response_{status}')
    response.status_code = status
    response.ok = status < 400
    response.headers = headers or {}
    if body is None:
        response.json.side_effect = ValueError('no json')
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def auth_service():
    service = MagicMock(name='AuthService')
    service.get_auth_headers.return_value = {
        'Authorization': 'Bearer jwt-abc',
        'Content-Type': 'application/json',
    }
    return service


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(auth_service, session):
    return RecipeApiClient('https://przepisy.example/', auth_service, session=session, timeout=5)


class TestRequests:

    def test_update_preferences_sends_bearer_token(self, client, session):
        session.request.return_value = _response(200, {'preferences': ['vegan']})

        assert client.update_preferences(['vegan']) == {'preferences': ['vegan']}
        session.request.assert_called_once_with(
            'PUT',
            'https://przepisy.example/api/profiles/me',
            json={'preferences': ['vegan']},
            headers={'Authorization': 'Bearer jwt-abc', 'Content-Type': 'application/json'},
            timeout=5,
        )

    def test_api_key_calls(self, client, session):
        session.request.return_value = _response(200, {'message': 'ok'})
        client.update_api_key('sk-' + 'a' * 30)
        method, url = session.request.call_args[0]
        assert (method, url) == ('PUT', 'https://przepisy.example/api/profiles/api-key')
        assert session.request.call_args[1]['json'] == {'api_key': 'sk-' + 'a' * 30, 'provider': 'openai'}

        client.delete_api_key()
        assert session.request.call_args[0][0] == 'DELETE'

    def test_missing_session_is_401(self, client, auth_service, session):
        auth_service.get_auth_headers.side_effect = AuthServiceError(MISSING_TOKEN_MESSAGE, 'unauthenticated')
        with pytest.raises(ApiClientError) as exc:
            client.get_profile()
        assert exc.value.status == 401
        assert exc.value.message == MISSING_TOKEN_MESSAGE
        session.request.assert_not_called()


class TestErrors:

    def test_validation_error_uses_body(self, client, session):
        session.request.return_value = _response(400, {'error': 'Invalid or expired API key'})
        with pytest.raises(ApiClientError) as exc:
            client.update_api_key('sk-' + 'a' * 30)
        assert exc.value.status == 400
        assert exc.value.message == 'Invalid or expired API key'

    def test_server_error_is_generic(self, client, session):
        session.request.return_value = _response(500, {'error': 'Internal server error'})
        with pytest.raises(ApiClientError) as exc:
            client.get_profile()
        assert exc.value.message == STATUS_MESSAGES[500]

    def test_rate_limit_carries_retry_after(self, client, session):
        session.request.return_value = _response(429, {'error': 'Rate limit exceeded'}, {'Retry-After': '120'})
        with pytest.raises(ApiClientError) as exc:
            client.get_api_usage()
        assert exc.value.status == 429
        assert exc.value.retry_after == 120

    def test_non_json_error(self, client, session):
        session.request.return_value = _response(404)
        with pytest.raises(ApiClientError) as exc:
            client.get_profile()
        assert exc.value.status == 404
        assert exc.value.message == STATUS_MESSAGES[404]

    def test_network_failure(self, client, session):
        session.request.side_effect = requests.ConnectionError('refused')
        with pytest.raises(ApiClientError) as exc:
            client.get_profile()
        assert exc.value.message == NETWORK_ERROR_MESSAGE
        assert exc.value.status is None
