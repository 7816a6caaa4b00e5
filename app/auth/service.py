# app/auth/service.py
"""
Auth Service

Thin wrapper over the hosted auth provider (Supabase Auth). Each operation
either returns the provider payload or raises AuthServiceError carrying a
user-facing Polish message. Used server-side with a per-request client and
client-side with a long-lived client that holds the user's session.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


SESSION_REFRESH_MARGIN = 5 * 60  # seconds
DEFAULT_ERROR_MESSAGE = "Wystąpił nieoczekiwany błąd"
MISSING_TOKEN_MESSAGE = "Brak tokenu uwierzytelniającego"


@dataclass(frozen=True)
class Translation:
    match: str
    message: str
    category: str


# Order matters: the first substring that matches wins.
TRANSLATIONS = (
    Translation('Invalid login credentials', 'Nieprawidłowy email lub hasło', 'credentials'),
    Translation('Email not confirmed', 'Email nie został potwierdzony. Sprawdź swoją skrzynkę odbiorczą.', 'unconfirmed'),
    Translation('User already registered', 'Ten adres email jest już zarejestrowany', 'conflict'),
    Translation('Password should be at least 6 characters', 'Hasło musi mieć minimum 6 znaków', 'validation'),
    Translation('Unable to validate email address: invalid format', 'Nieprawidłowy format adresu email', 'validation'),
    Translation('User not found', 'Użytkownik nie został znaleziony', 'not_found'),
    Translation('Too many requests', 'Zbyt wiele prób. Spróbuj ponownie za chwilę.', 'rate_limit'),
    Translation('Email rate limit exceeded', 'Przekroczono limit prób. Spróbuj ponownie za chwilę.', 'rate_limit'),
    Translation('Signup disabled', 'Rejestracja jest obecnie wyłączona', 'disabled'),
    Translation('Signup not allowed', 'Rejestracja nie jest dozwolona', 'disabled'),
    Translation('OAuth provider not supported', 'Ten sposób logowania nie jest obsługiwany', 'oauth'),
    Translation('OAuth account not linked', 'Konto OAuth nie jest połączone', 'oauth'),
    Translation('OAuth provider error', 'Błąd podczas logowania przez Google', 'oauth'),
    Translation('Network error', 'Błąd sieci. Sprawdź połączenie internetowe.', 'network'),
    Translation('Service unavailable', 'Usługa jest niedostępna. Spróbuj ponownie później.', 'unavailable'),
)

_BY_MATCH = {t.match: t for t in TRANSLATIONS}

# Structured provider error codes, checked before message substrings.
ERROR_CODES = {
    'invalid_credentials': _BY_MATCH['Invalid login credentials'],
    'email_not_confirmed': _BY_MATCH['Email not confirmed'],
    'user_already_exists': _BY_MATCH['User already registered'],
    'email_exists': _BY_MATCH['User already registered'],
    'email_address_invalid': _BY_MATCH['Unable to validate email address: invalid format'],
    'user_not_found': _BY_MATCH['User not found'],
    'over_request_rate_limit': _BY_MATCH['Too many requests'],
    'over_email_send_rate_limit': _BY_MATCH['Email rate limit exceeded'],
    'signup_disabled': _BY_MATCH['Signup disabled'],
    'email_provider_disabled': _BY_MATCH['Signup not allowed'],
    'provider_disabled': _BY_MATCH['OAuth provider not supported'],
    'oauth_provider_not_supported': _BY_MATCH['OAuth provider not supported'],
}

_NETWORK = _BY_MATCH['Network error']


class AuthServiceError(Exception):
    """Provider failure translated for display."""

    def __init__(self, message, category='unknown', code=None, status=None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.code = code
        self.status = status


def translate_error(error) -> AuthServiceError:
    """
    Map a provider error (exception, dict or plain string) to AuthServiceError.

    Unmatched messages keep the provider's wording under category 'unknown';
    an empty message becomes the generic fallback.
    """
    if isinstance(error, AuthServiceError):
        return error

    if isinstance(error, httpx.TransportError):
        return AuthServiceError(_NETWORK.message, _NETWORK.category)

    if isinstance(error, dict):
        message = error.get('message') or error.get('msg') or ''
        code = error.get('code') or error.get('error_code')
        status = error.get('status')
    elif isinstance(error, str):
        message, code, status = error, None, None
    else:
        message = getattr(error, 'message', None) or str(error)
        code = getattr(error, 'code', None)
        status = getattr(error, 'status', None)

    if code and code in ERROR_CODES:
        entry = ERROR_CODES[code]
        return AuthServiceError(entry.message, entry.category, code, status)

    lowered = (message or '').lower()
    for entry in TRANSLATIONS:
        if entry.match.lower() in lowered:
            return AuthServiceError(entry.message, entry.category, code, status)

    return AuthServiceError(message or DEFAULT_ERROR_MESSAGE, 'unknown', code, status)


class SessionStatus(Enum):
    VALID = 'valid'
    REFRESHED = 'refreshed'
    MISSING = 'missing'
    LOOKUP_FAILED = 'lookup_failed'
    REFRESH_FAILED = 'refresh_failed'

    @property
    def is_valid(self):
        return self in (SessionStatus.VALID, SessionStatus.REFRESHED)


class AuthService:
    """
    Wraps a Supabase auth client (the `client.auth` attribute).

    Redirect targets default to pages under `site_url`.
    """

    def __init__(self, auth, site_url: str = ''):
        self.auth = auth
        self.site_url = site_url.rstrip('/')

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            translated = translate_error(e)
            logger.info(f"Auth provider call {getattr(fn, '__name__', fn)} failed: "
                        f"{translated.category} ({e})")
            raise translated from e

    def _redirect(self, path):
        return f"{self.site_url}{path}" if self.site_url else None

    def sign_up(self, email: str, password: str, redirect_to: Optional[str] = None):
        options = {'data': {'email_confirmed': False}}
        redirect_to = redirect_to or self._redirect('/profile')
        if redirect_to:
            options['email_redirect_to'] = redirect_to
        return self._call(self.auth.sign_up, {
            'email': email,
            'password': password,
            'options': options,
        })

    def sign_in(self, email: str, password: str):
        return self._call(self.auth.sign_in_with_password, {
            'email': email,
            'password': password,
        })

    def sign_in_with_oauth(self, provider: str = 'google', redirect_to: Optional[str] = None):
        options = {}
        redirect_to = redirect_to or self._redirect('/profile')
        if redirect_to:
            options['redirect_to'] = redirect_to
        if provider == 'google':
            options['query_params'] = {'access_type': 'offline', 'prompt': 'consent'}
        return self._call(self.auth.sign_in_with_oauth, {
            'provider': provider,
            'options': options,
        })

    def reset_password(self, email: str, redirect_to: Optional[str] = None):
        options = {}
        redirect_to = redirect_to or self._redirect('/reset-password/confirm')
        if redirect_to:
            options['redirect_to'] = redirect_to
        return self._call(self.auth.reset_password_for_email, email, options)

    def sign_out(self, access_token: Optional[str] = None):
        """
        End the client's own session, or revoke `access_token` when the
        caller is a server acting for a bearer-token user.
        """
        if access_token:
            return self._call(self.auth.admin.sign_out, access_token)
        return self._call(self.auth.sign_out)

    def get_current_session(self):
        return self._call(self.auth.get_session)

    def get_current_user(self):
        """User of the session this client holds, or None when signed out."""
        response = self._call(self.auth.get_user)
        return getattr(response, 'user', None)

    def get_user_for_token(self, token: str):
        """Resolve an access token to the provider's user, or None."""
        if not token:
            return None
        response = self._call(self.auth.get_user, token)
        return getattr(response, 'user', None)

    def refresh_session(self, refresh_token: Optional[str] = None):
        if refresh_token:
            response = self._call(self.auth.refresh_session, refresh_token)
        else:
            response = self._call(self.auth.refresh_session)
        return getattr(response, 'session', None)

    def update_password(self, new_password: str, user_id: Optional[str] = None):
        """
        Change the password of the client's own session, or of `user_id`
        when a server acts for a bearer-token user.
        """
        attributes = {'password': new_password}
        if user_id:
            return self._call(self.auth.admin.update_user_by_id, user_id, attributes)
        return self._call(self.auth.update_user, attributes)

    def on_auth_state_change(self, callback: Callable):
        return self.auth.on_auth_state_change(callback)

    def get_auth_token(self) -> str:
        session = self.get_current_session()
        token = getattr(session, 'access_token', None)
        if not token:
            raise AuthServiceError(MISSING_TOKEN_MESSAGE, 'unauthenticated')
        return token

    def get_auth_headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.get_auth_token()}',
            'Content-Type': 'application/json',
        }

    def check_session(self, now: Optional[float] = None) -> SessionStatus:
        """
        Check the current session, refreshing it when it expires within five
        minutes. Never raises.
        """
        now = time.time() if now is None else now
        try:
            session = self.get_current_session()
        except AuthServiceError as e:
            logger.warning(f"Session lookup failed: {e.message}")
            return SessionStatus.LOOKUP_FAILED

        if not session:
            return SessionStatus.MISSING

        expires_at = getattr(session, 'expires_at', None)
        if expires_at is None or expires_at > now + SESSION_REFRESH_MARGIN:
            return SessionStatus.VALID

        try:
            refreshed = self.refresh_session()
        except AuthServiceError as e:
            logger.warning(f"Session refresh failed: {e.message}")
            return SessionStatus.REFRESH_FAILED
        if not refreshed:
            logger.warning("Session refresh returned no session")
            return SessionStatus.REFRESH_FAILED
        return SessionStatus.REFRESHED

    def ensure_valid_session(self, now: Optional[float] = None) -> bool:
        return self.check_session(now).is_valid
