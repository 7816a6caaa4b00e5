# app/auth/routes.py
"""
JSON auth endpoints backed by the hosted auth provider.

Input is validated with the same rules the client forms use; provider errors
come back translated to Polish.
"""
import logging

from flask import Blueprint, g, jsonify, request
from flask_login import current_user, login_required

from app import limiter
from app.api.errors import api_error, validation_error
from app.auth.forms import RegisterForm, ResetPasswordForm, SignInForm
from app.auth.provider import current_user_id, get_auth_service
from app.auth.service import AuthServiceError
from app.auth.validation import MSG_PASSWORDS_DIFFER, validate_password

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

SIGN_IN_RATE_LIMIT = "10 per minute"
SIGN_UP_RATE_LIMIT = "5 per minute"
RESET_RATE_LIMIT = "5 per minute"

SUPPORTED_OAUTH_PROVIDERS = ('google',)

PROVIDER_STATUS = {
    'rate_limit': 429,
    'network': 503,
    'unavailable': 503,
}


def _json_payload():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _provider_error(error: AuthServiceError):
    return api_error(error.category, error.message, PROVIDER_STATUS.get(error.category, 400))


def _user_payload(user):
    if user is None:
        return None
    return {'id': str(user.id), 'email': getattr(user, 'email', None)}


def _session_payload(session):
    if session is None:
        return None
    return {
        'access_token': session.access_token,
        'refresh_token': session.refresh_token,
        'expires_at': session.expires_at,
    }


@auth_bp.route('/signin', methods=['POST'])
@limiter.limit(SIGN_IN_RATE_LIMIT)
def signin():
    form = SignInForm(formdata=None, data=_json_payload())
    if not form.validate():
        return validation_error(form.first_errors())

    try:
        result = get_auth_service().sign_in(form.email.data, form.password.data)
    except AuthServiceError as e:
        return _provider_error(e)

    session = _session_payload(result.session) or {}
    logger.info(f"User {result.user.id} signed in")
    return jsonify({'user': _user_payload(result.user), **session})


@auth_bp.route('/signup', methods=['POST'])
@limiter.limit(SIGN_UP_RATE_LIMIT)
def signup():
    form = RegisterForm(formdata=None, data=_json_payload())
    if not form.validate():
        return validation_error(form.first_errors())

    try:
        result = get_auth_service().sign_up(form.email.data, form.password.data)
    except AuthServiceError as e:
        return _provider_error(e)

    logger.info(f"User {getattr(result.user, 'id', None)} registered")
    return jsonify({
        'user': _user_payload(result.user),
        'session': _session_payload(result.session),
    })


@auth_bp.route('/reset-password', methods=['POST'])
@limiter.limit(RESET_RATE_LIMIT)
def reset_password():
    form = ResetPasswordForm(formdata=None, data=_json_payload())
    if not form.validate():
        return validation_error(form.first_errors())

    try:
        get_auth_service().reset_password(form.email.data)
    except AuthServiceError as e:
        return _provider_error(e)

    return jsonify({'message': 'Jeśli konto istnieje, wysłaliśmy link do resetowania hasła.'})


@auth_bp.route('/refresh', methods=['POST'])
@limiter.limit(SIGN_IN_RATE_LIMIT)
def refresh():
    refresh_token = _json_payload().get('refresh_token')
    if not isinstance(refresh_token, str) or not refresh_token:
        return validation_error({'refresh_token': 'Brak tokenu odświeżania'})

    try:
        session = get_auth_service().refresh_session(refresh_token)
    except AuthServiceError as e:
        return _provider_error(e)
    if session is None:
        return api_error('Unauthorized', 'Sesja wygasła. Zaloguj się ponownie.', 401)
    return jsonify(_session_payload(session))


@auth_bp.route('/signout', methods=['POST'])
@login_required
def signout():
    try:
        get_auth_service().sign_out(g.get('access_token'))
    except AuthServiceError as e:
        return _provider_error(e)
    return jsonify({'message': 'Wylogowano pomyślnie'})


@auth_bp.route('/update-password', methods=['POST'])
@limiter.limit(RESET_RATE_LIMIT)
@login_required
def update_password():
    payload = _json_payload()
    password = payload.get('password')
    error = validate_password(password, require_complexity=True)
    if error:
        return validation_error({'password': error})
    if 'confirm_password' in payload and payload['confirm_password'] != password:
        return validation_error({'confirm_password': MSG_PASSWORDS_DIFFER})

    try:
        get_auth_service().update_password(password, user_id=current_user_id())
    except AuthServiceError as e:
        return _provider_error(e)

    logger.info(f"User {current_user_id()} changed password")
    return jsonify({'message': 'Hasło zostało zmienione'})


@auth_bp.route('/oauth/<provider>', methods=['GET'])
def oauth(provider):
    if provider not in SUPPORTED_OAUTH_PROVIDERS:
        return api_error('oauth', 'Ten sposób logowania nie jest obsługiwany', 400)

    try:
        result = get_auth_service().sign_in_with_oauth(provider, request.args.get('redirect_to'))
    except AuthServiceError as e:
        return _provider_error(e)
    return jsonify({'provider': provider, 'url': result.url})


@auth_bp.route('/session', methods=['GET'])
@login_required
def session_info():
    return jsonify({'user': current_user.to_dict()})
