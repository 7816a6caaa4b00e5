"""
Pytest configuration and shared fixtures.
"""

import pytest
import os
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

# Add the app directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set DATABASE_URL before Config class is imported (it validates at class-definition time)
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')


ALICE_ID = '0b9c7c52-5f0e-4d8e-9c59-0f0d8f6a1a01'
BOB_ID = '6f3e2a10-8d7b-4c1e-b2a4-7e5d9c3b2f02'

ALICE_TOKEN = 'token-alice'
BOB_TOKEN = 'token-bob'

USERS_BY_TOKEN = {
    ALICE_TOKEN: SimpleNamespace(id=ALICE_ID, email='alice@example.com'),
    BOB_TOKEN: SimpleNamespace(id=BOB_ID, email='bob@example.com'),
}


def auth_headers(token=ALICE_TOKEN):
    return {'Authorization': f'Bearer {token}'}


def make_auth_provider():
    """
    Mock of the provider's `client.auth` object.

    get_user(token) resolves the tokens above; anything else fails the way
    the provider does for a bad JWT.
    """
    provider = MagicMock(name='supabase_auth')

    def get_user(jwt=None):
        user = USERS_BY_TOKEN.get(jwt)
        if user is None:
            raise Exception('invalid JWT: unable to parse or verify signature')
        return SimpleNamespace(user=user)

    provider.get_user.side_effect = get_user
    return provider


@pytest.fixture
def auth_provider():
    return make_auth_provider()


@pytest.fixture
def app(auth_provider):
    """Create application for testing."""
    from app import create_app, db as _db
    from app.auth.service import AuthService

    app = create_app('testing')
    app.extensions['auth_service_factory'] = lambda: AuthService(
        auth_provider, site_url=app.config['SITE_URL'])

    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def app_context(app):
    """Application context for testing."""
    with app.app_context():
        yield


@pytest.fixture
def db(app, app_context):
    """Database session bound to the test application."""
    from app import db as _db

    yield _db
    _db.session.rollback()


@pytest.fixture
def client(app):
    """Test client. Requests run in their own app context."""
    return app.test_client()
