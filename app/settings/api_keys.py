# app/settings/api_keys.py
"""
User API Key Management

One AI provider key per user, used for recipe generation instead of the
application key. The key is validated against the provider before it is
stored encrypted; it is never returned.
"""
from flask import Blueprint, jsonify, request
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from app import db, limiter
from app.api.errors import api_error
from app.auth.provider import current_user_id
from app.lib.llm_utils import (
    MIN_API_KEY_LENGTH,
    check_api_key_format,
    encrypt_api_key,
    validate_api_key,
)
from app.lib.time import utcnow_naive
from app.models import UserAPIKey
import logging

api_keys_bp = Blueprint('api_keys', __name__)
logger = logging.getLogger(__name__)

API_KEY_RATE_LIMIT = "5 per hour"


def _input_errors(payload):
    errors = {}
    api_key = payload.get('api_key')
    provider = payload.get('provider', 'openai')
    if not isinstance(api_key, str) or len(api_key) < MIN_API_KEY_LENGTH:
        errors['api_key'] = f"Klucz API musi mieć co najmniej {MIN_API_KEY_LENGTH} znaków"
    if not isinstance(provider, str) or not provider:
        errors['provider'] = "Nieprawidłowy dostawca"
    return errors


@api_keys_bp.route('/api-key', methods=['PUT'])
@login_required
@limiter.limit(API_KEY_RATE_LIMIT)
def update_api_key():
    """
    Validate and store the caller's key.

    Checks run cheapest first: shape, provider and prefix before the live
    provider call.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return api_error('Invalid input', 'Nieprawidłowe dane wejściowe', 400)

    errors = _input_errors(payload)
    if errors:
        return api_error('Invalid input', 'Nieprawidłowe dane wejściowe', 400, details=errors)

    api_key = payload['api_key']
    provider = payload.get('provider', 'openai')
    user_id = current_user_id()

    ok, error = check_api_key_format(provider, api_key)
    if not ok:
        return api_error(error, status_code=400)

    logger.info(f"Validating {provider} API key for user {user_id}")
    is_valid, message = validate_api_key(provider, api_key)
    if not is_valid:
        logger.info(f"API key rejected for user {user_id}: {message}")
        return api_error('Invalid or expired API key', status_code=400)

    try:
        key = UserAPIKey.query.filter_by(user_id=user_id).first()
        if key is None:
            key = UserAPIKey(user_id=user_id)
            db.session.add(key)
        key.provider = provider
        key.encrypted_api_key = encrypt_api_key(api_key)
        key.key_last4 = api_key[-4:]
        key.is_active = True
        key.last_validated = utcnow_naive()
        key.updated_at = utcnow_naive()
        db.session.commit()
    except (SQLAlchemyError, ValueError) as e:
        db.session.rollback()
        logger.error(f"Error saving API key for user {user_id}: {e}")
        return api_error('Failed to save API key', status_code=500)

    logger.info(f"Stored {provider} API key for user {user_id}")
    return jsonify({
        'message': 'API key updated successfully',
        'data': {
            'id': key.id,
            'provider': key.provider,
            'is_active': key.is_active,
            'updated_at': key.to_dict()['updated_at'],
        },
    })


@api_keys_bp.route('/api-key', methods=['DELETE'])
@login_required
def delete_api_key():
    user_id = current_user_id()
    try:
        UserAPIKey.query.filter_by(user_id=user_id).delete()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting API key for user {user_id}: {e}")
        return api_error('Failed to delete API key', status_code=500)

    logger.info(f"Deleted API key for user {user_id}")
    return jsonify({'message': 'API key deleted successfully'})


@api_keys_bp.route('/api-key', methods=['GET'])
@login_required
def get_api_key():
    key = UserAPIKey.query.filter_by(user_id=current_user_id()).first()
    if key is None:
        return jsonify({'data': None, 'has_api_key': False})
    return jsonify({'data': key.to_dict(), 'has_api_key': True})
