"""
Wiring between Flask-Login and the hosted auth provider.

API requests authenticate with `Authorization: Bearer <access token>`; the
token is resolved through the provider on every request. A fresh provider
client is built per request so no user session is shared between callers.
"""
import logging

from flask import current_app, g
from flask_login import current_user
from supabase import create_client
from supabase.client import ClientOptions

from app import login_manager
from app.api.errors import api_error
from app.auth.service import AuthService, AuthServiceError

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Musisz być zalogowany, aby kontynuować."


def create_supabase_client(url=None, key=None, persist_session=False):
    url = url or current_app.config.get('SUPABASE_URL')
    key = key or current_app.config.get('SUPABASE_KEY')
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be configured")
    options = ClientOptions(
        persist_session=persist_session,
        auto_refresh_token=persist_session,
    )
    return create_client(url, key, options=options)


def _default_auth_service():
    client = create_supabase_client()
    return AuthService(client.auth, site_url=current_app.config.get('SITE_URL', ''))


def get_auth_service() -> AuthService:
    """
    AuthService for the current request.

    The factory lives in app.extensions['auth_service_factory'] so it can be
    swapped (tests install one backed by a mock provider).
    """
    if 'auth_service' not in g:
        factory = current_app.extensions.get('auth_service_factory', _default_auth_service)
        g.auth_service = factory()
    return g.auth_service


def bearer_token(request):
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def load_user_from_request(request):
    from app.models import AuthUser

    token = bearer_token(request)
    if not token:
        return None
    try:
        user = get_auth_service().get_user_for_token(token)
    except AuthServiceError as e:
        logger.info(f"Bearer token rejected: {e.category}")
        return None
    if user is None:
        return None
    g.access_token = token
    return AuthUser(id=str(user.id), email=getattr(user, 'email', None))


def unauthorized():
    return api_error('Unauthorized', UNAUTHORIZED_MESSAGE, 401)


def current_user_id():
    return str(current_user.id)


def init_auth(app):
    app.extensions.setdefault('auth_service_factory', _default_auth_service)
    login_manager.request_loader(load_user_from_request)
    login_manager.unauthorized_handler(unauthorized)

    # Accounts live in the provider; there is no cookie session to restore.
    @login_manager.user_loader
    def load_user(user_id):
        return None
