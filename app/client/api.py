"""
HTTP client for the profile and API key endpoints.

Attaches the signed-in user's bearer token from AuthService and maps error
responses to ApiClientError with a Polish message.
"""
import logging
from typing import Optional

import requests

from app.auth.service import AuthServiceError

logger = logging.getLogger(__name__)


NETWORK_ERROR_MESSAGE = "Błąd sieci. Sprawdź połączenie internetowe."

STATUS_MESSAGES = {
    400: "Nieprawidłowe dane wejściowe",
    401: "Musisz być zalogowany",
    403: "Nie masz uprawnień do tego zasobu",
    404: "Nie znaleziono zasobu",
    429: "Zbyt wiele żądań. Spróbuj ponownie później",
    500: "Błąd serwera. Spróbuj ponownie później",
}


class ApiClientError(Exception):
    def __init__(self, message, status=None, retry_after=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.retry_after = retry_after
        self.payload = payload or {}


class RecipeApiClient:
    def __init__(self, base_url: str, auth_service, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.base_url = base_url.rstrip('/')
        self.auth_service = auth_service
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method, path, json=None):
        try:
            headers = self.auth_service.get_auth_headers()
        except AuthServiceError as e:
            raise ApiClientError(e.message, 401) from e

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiClientError(NETWORK_ERROR_MESSAGE) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.ok:
            return body
        raise self._error_for(response, body)

    @staticmethod
    def _error_for(response, body):
        status = response.status_code
        if not isinstance(body, dict):
            body = {}
        if status == 400:
            message = body.get('error') or STATUS_MESSAGES[400]
        elif status >= 500:
            message = STATUS_MESSAGES[500]
        else:
            message = STATUS_MESSAGES.get(status) or body.get('error') or f"HTTP {status}"

        retry_after = None
        if status == 429:
            header = response.headers.get('Retry-After')
            retry_after = int(header) if header and header.isdigit() else None
        return ApiClientError(message, status, retry_after, body)

    def get_profile(self):
        return self._request('GET', '/api/profiles/me')

    def update_preferences(self, preferences):
        return self._request('PUT', '/api/profiles/me', json={'preferences': list(preferences)})

    def get_api_key(self):
        return self._request('GET', '/api/profiles/api-key')

    def update_api_key(self, api_key, provider='openai'):
        return self._request('PUT', '/api/profiles/api-key',
                             json={'api_key': api_key, 'provider': provider})

    def delete_api_key(self):
        return self._request('DELETE', '/api/profiles/api-key')

    def get_api_usage(self):
        return self._request('GET', '/api/profiles/api-usage')
