"""
Tests for the JSON auth endpoints and bearer token authentication.
"""

from types import SimpleNamespace

from conftest import ALICE_ID, ALICE_TOKEN, auth_headers


def _session(token='access-1'):
    return SimpleNamespace(access_token=token, refresh_token='refresh-1', expires_at=1_900_000_000)


class TestSignIn:

    def test_invalid_input_never_reaches_provider(self, client, auth_provider):
        response = client.post('/api/auth/signin', json={'email': 'bad', 'password': ''})
        assert response.status_code == 400
        data = response.get_json()
        assert data['error'] == 'Validation failed'
        assert data['details'] == {
            'email': 'Wprowadź poprawny adres email',
            'password': 'Hasło jest wymagane',
        }
        auth_provider.sign_in_with_password.assert_not_called()

    def test_success_returns_session(self, client, auth_provider):
        auth_provider.sign_in_with_password.return_value = SimpleNamespace(
            user=SimpleNamespace(id=ALICE_ID, email='alice@example.com'), session=_session())

        response = client.post('/api/auth/signin', json={
            'email': 'alice@example.com', 'password': 'whatever1'})

        assert response.status_code == 200
        data = response.get_json()
        assert data['user'] == {'id': ALICE_ID, 'email': 'alice@example.com'}
        assert data['access_token'] == 'access-1'
        assert data['refresh_token'] == 'refresh-1'

    def test_provider_error_is_translated(self, client, auth_provider):
        auth_provider.sign_in_with_password.side_effect = Exception('Invalid login credentials')

        response = client.post('/api/auth/signin', json={
            'email': 'alice@example.com', 'password': 'whatever1'})

        assert response.status_code == 400
        assert response.get_json() == {
            'error': 'credentials',
            'message': 'Nieprawidłowy email lub hasło',
        }

    def test_provider_rate_limit_maps_to_429(self, client, auth_provider):
        auth_provider.sign_in_with_password.side_effect = Exception('Too many requests')
        response = client.post('/api/auth/signin', json={
            'email': 'alice@example.com', 'password': 'whatever1'})
        assert response.status_code == 429


class TestSignUp:

    def test_register_rules_apply(self, client, auth_provider):
        response = client.post('/api/auth/signup', json={
            'email': 'new@example.com',
            'password': 'abcdefgh',
            'confirm_password': 'abcdefgh',
            'accept_terms': False,
        })
        assert response.status_code == 400
        details = response.get_json()['details']
        assert details['password'] == 'Hasło musi zawierać wielką literę, małą literę i cyfrę'
        assert details['accept_terms'] == 'Musisz zaakceptować warunki użytkowania'
        auth_provider.sign_up.assert_not_called()

    def test_terms_flag_must_be_boolean_true(self, client, auth_provider):
        response = client.post('/api/auth/signup', json={
            'email': 'new@example.com',
            'password': 'Abcdefg1',
            'confirm_password': 'Abcdefg1',
            'accept_terms': 'false',
        })
        assert response.status_code == 400
        assert response.get_json()['details'] == {
            'accept_terms': 'Musisz zaakceptować warunki użytkowania',
        }
        auth_provider.sign_up.assert_not_called()

    def test_success(self, client, auth_provider):
        auth_provider.sign_up.return_value = SimpleNamespace(
            user=SimpleNamespace(id='new-id', email='new@example.com'), session=None)

        response = client.post('/api/auth/signup', json={
            'email': 'new@example.com',
            'password': 'Abcdefg1',
            'confirm_password': 'Abcdefg1',
            'accept_terms': True,
        })

        assert response.status_code == 200
        assert response.get_json() == {
            'user': {'id': 'new-id', 'email': 'new@example.com'},
            'session': None,
        }
        payload = auth_provider.sign_up.call_args[0][0]
        assert payload['options']['email_redirect_to'] == 'http://localhost:3000/profile'

    def test_existing_account(self, client, auth_provider):
        auth_provider.sign_up.side_effect = Exception('User already registered')
        response = client.post('/api/auth/signup', json={
            'email': 'alice@example.com',
            'password': 'Abcdefg1',
            'confirm_password': 'Abcdefg1',
            'accept_terms': True,
        })
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Ten adres email jest już zarejestrowany'


class TestResetPassword:

    def test_requires_email(self, client):
        response = client.post('/api/auth/reset-password', json={})
        assert response.status_code == 400
        assert response.get_json()['details'] == {'email': 'Email jest wymagany'}

    def test_success(self, client, auth_provider):
        response = client.post('/api/auth/reset-password', json={'email': 'alice@example.com'})
        assert response.status_code == 200
        auth_provider.reset_password_for_email.assert_called_once()

    def test_network_failure_is_503(self, client, auth_provider):
        import httpx
        auth_provider.reset_password_for_email.side_effect = httpx.ConnectError('down')
        response = client.post('/api/auth/reset-password', json={'email': 'alice@example.com'})
        assert response.status_code == 503
        assert response.get_json()['message'] == 'Błąd sieci. Sprawdź połączenie internetowe.'


class TestBearerAuth:

    def test_missing_token(self, client):
        response = client.get('/api/auth/session')
        assert response.status_code == 401
        assert response.get_json() == {
            'error': 'Unauthorized',
            'message': 'Musisz być zalogowany, aby kontynuować.',
        }

    def test_invalid_token(self, client):
        response = client.get('/api/auth/session', headers=auth_headers('forged'))
        assert response.status_code == 401

    def test_non_bearer_scheme(self, client):
        response = client.get('/api/auth/session', headers={'Authorization': f'Basic {ALICE_TOKEN}'})
        assert response.status_code == 401

    def test_valid_token(self, client):
        response = client.get('/api/auth/session', headers=auth_headers())
        assert response.status_code == 200
        assert response.get_json()['user'] == {'id': ALICE_ID, 'email': 'alice@example.com'}

    def test_signout_revokes_token(self, client, auth_provider):
        response = client.post('/api/auth/signout', headers=auth_headers())
        assert response.status_code == 200
        auth_provider.admin.sign_out.assert_called_once_with(ALICE_TOKEN)


class TestOAuth:

    def test_unsupported_provider(self, client):
        response = client.get('/api/auth/oauth/github')
        assert response.status_code == 400

    def test_google_returns_redirect_url(self, client, auth_provider):
        auth_provider.sign_in_with_oauth.return_value = SimpleNamespace(
            provider='google', url='https://accounts.google.com/o/oauth2/auth?x=1')
        response = client.get('/api/auth/oauth/google')
        assert response.status_code == 200
        assert response.get_json()['url'].startswith('https://accounts.google.com/')


class TestRefresh:

    def test_requires_refresh_token(self, client):
        response = client.post('/api/auth/refresh', json={})
        assert response.status_code == 400

    def test_returns_new_session(self, client, auth_provider):
        auth_provider.refresh_session.return_value = SimpleNamespace(session=_session('access-2'))
        response = client.post('/api/auth/refresh', json={'refresh_token': 'refresh-1'})
        assert response.status_code == 200
        assert response.get_json()['access_token'] == 'access-2'
        auth_provider.refresh_session.assert_called_once_with('refresh-1')


class TestUpdatePassword:

    def test_requires_auth(self, client, auth_provider):
        response = client.post('/api/auth/update-password', json={'password': 'Abcdefg1'})
        assert response.status_code == 401
        auth_provider.admin.update_user_by_id.assert_not_called()

    def test_weak_password_rejected(self, client, auth_provider):
        response = client.post('/api/auth/update-password', headers=auth_headers(),
                               json={'password': 'abcdefgh'})
        assert response.status_code == 400
        assert response.get_json()['details'] == {
            'password': 'Hasło musi zawierać wielką literę, małą literę i cyfrę',
        }
        auth_provider.admin.update_user_by_id.assert_not_called()

    def test_confirmation_must_match(self, client, auth_provider):
        response = client.post('/api/auth/update-password', headers=auth_headers(),
                               json={'password': 'Abcdefg1', 'confirm_password': 'Abcdefg2'})
        assert response.status_code == 400
        assert response.get_json()['details'] == {'confirm_password': 'Hasła nie są identyczne'}

    def test_updates_current_users_password(self, client, auth_provider):
        response = client.post('/api/auth/update-password', headers=auth_headers(),
                               json={'password': 'Abcdefg1', 'confirm_password': 'Abcdefg1'})
        assert response.status_code == 200
        auth_provider.admin.update_user_by_id.assert_called_once_with(ALICE_ID, {'password': 'Abcdefg1'})
