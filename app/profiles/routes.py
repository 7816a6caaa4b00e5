from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from app.api.errors import api_error, validation_error
from app.auth.provider import current_user_id
from app.lib.preferences import (
    CATEGORIES,
    MAX_PREFERENCES,
    category_label,
    preferences_by_category,
    validate_preference_list,
)
from app.lib.time import isoformat
from app.profiles import service

profiles_bp = Blueprint('profiles', __name__)


@profiles_bp.route('/me', methods=['GET'])
@login_required
def get_me():
    profile = service.get_or_create_profile(current_user_id())
    return jsonify(profile.to_dict())


@profiles_bp.route('/me', methods=['PUT'])
@profiles_bp.route('/me/preferences', methods=['PATCH'])
@login_required
def update_me():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return api_error('Invalid JSON in request body', 'Nieprawidłowe dane wejściowe', 400)

    preferences, error = validate_preference_list(payload.get('preferences'))
    if error:
        return validation_error({'preferences': error})

    profile = service.update_preferences(current_user_id(), preferences)
    current_app.logger.info(f"Profile {profile.user_id} saved {len(preferences)} preferences")
    return jsonify({
        'user_id': profile.user_id,
        'preferences': profile.preferences,
        'status': profile.status,
        'updated_at': isoformat(profile.updated_at),
    })


@profiles_bp.route('/me', methods=['DELETE'])
@login_required
def delete_me():
    profile = service.schedule_deletion(current_user_id())
    return jsonify({
        'message': 'Profile scheduled for deletion',
        'status': profile.status,
        'deletion_scheduled_at': isoformat(profile.status_changed_at),
    })


@profiles_bp.route('/api-usage', methods=['GET'])
@login_required
def api_usage():
    limits = service.usage_limits(current_user_id(), current_app.config.get('AI_DAILY_LIMIT', 50))
    return jsonify({'limits': limits})


@profiles_bp.route('/preferences/catalog', methods=['GET'])
def preference_catalog():
    """Selectable preferences grouped by category, in display order."""
    return jsonify({
        'max_preferences': MAX_PREFERENCES,
        'categories': [
            {
                'id': category,
                'label': category_label(category),
                'items': [item.to_dict() for item in preferences_by_category(category)],
            }
            for category in CATEGORIES
        ],
    })
