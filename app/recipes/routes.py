# app/recipes/routes.py
"""
Recipe endpoints: listing, details, visibility, ratings and AI generation.

Every recipe is scoped to its owner; other users' recipes answer 404.
"""
import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from app import limiter
from app.api.errors import api_error, validation_error
from app.auth.provider import current_user_id
from app.profiles.service import get_profile
from app.recipes import generator, service

recipes_bp = Blueprint('recipes', __name__)
logger = logging.getLogger(__name__)

GENERATE_RATE_LIMIT = "20 per hour"
GENERATE_UNAUTHORIZED_MESSAGE = "Musisz być zalogowany, aby generować przepisy"


def _json_object():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


def _owned_recipe_or_error(recipe_id):
    if not service.is_valid_recipe_id(recipe_id):
        return None, validation_error({'id': 'Invalid recipe ID format'})
    recipe = service.get_owned_recipe(current_user_id(), recipe_id)
    if recipe is None:
        return None, api_error('Recipe not found', 'Nie znaleziono przepisu', 404)
    return recipe, None


@recipes_bp.route('', methods=['GET'])
@login_required
def list_recipes():
    try:
        params = service.parse_list_params(request.args)
    except service.ListParamsError as e:
        return api_error('Invalid query parameters', 'Nieprawidłowe parametry zapytania', 400,
                         details=e.details)
    return jsonify(service.list_recipes(current_user_id(), params))


@recipes_bp.route('/<recipe_id>', methods=['GET'])
@login_required
def get_recipe(recipe_id):
    recipe, error = _owned_recipe_or_error(recipe_id)
    if error:
        return error
    return jsonify(recipe.to_dict(user_rating=service.user_rating(recipe, current_user_id())))


@recipes_bp.route('/<recipe_id>', methods=['DELETE'])
@login_required
def delete_recipe(recipe_id):
    recipe, error = _owned_recipe_or_error(recipe_id)
    if error:
        return error
    service.delete_recipe(recipe)
    return jsonify({'message': 'Recipe deleted successfully'})


@recipes_bp.route('/<recipe_id>/visibility', methods=['PUT'])
@login_required
def update_visibility(recipe_id):
    recipe, error = _owned_recipe_or_error(recipe_id)
    if error:
        return error

    payload = _json_object()
    if payload is None or not isinstance(payload.get('is_visible'), bool):
        return validation_error({'is_visible': 'Visibility must be a boolean value'})

    recipe = service.set_visibility(recipe, payload['is_visible'])
    return jsonify({
        'id': recipe.id,
        'is_visible': recipe.is_visible,
        'updated_at': recipe.to_dict()['updated_at'],
    })


@recipes_bp.route('/<recipe_id>/rating', methods=['PUT', 'POST'])
@login_required
def rate_recipe(recipe_id):
    recipe, error = _owned_recipe_or_error(recipe_id)
    if error:
        return error

    payload = _json_object()
    rating = payload.get('rating') if payload else None
    if rating not in service.RATING_VALUES:
        return validation_error({'rating': "Rating must be either 'up' or 'down'"})

    saved = service.upsert_rating(recipe, current_user_id(), rating)
    return jsonify(saved.to_dict())


@recipes_bp.route('/<recipe_id>/rating', methods=['DELETE'])
@login_required
def unrate_recipe(recipe_id):
    recipe, error = _owned_recipe_or_error(recipe_id)
    if error:
        return error
    if not service.delete_rating(recipe, current_user_id()):
        return api_error('Rating not found', 'Nie oceniłeś jeszcze tego przepisu', 404)
    return jsonify({'message': 'Rating deleted successfully'})


@recipes_bp.route('/generate', methods=['POST'])
@limiter.limit(GENERATE_RATE_LIMIT)
def generate():
    if not current_user.is_authenticated:
        return api_error('Unauthorized', GENERATE_UNAUTHORIZED_MESSAGE, 401)

    payload = _json_object()
    if payload is None:
        return api_error('Invalid JSON in request body', 'Nieprawidłowe dane wejściowe', 400)

    query = payload.get('query')
    query = query.strip() if isinstance(query, str) else ''
    details = {}
    if not query:
        details['query'] = 'Recipe query is required'
    elif len(query) > generator.MAX_QUERY_LENGTH:
        details['query'] = 'Recipe query must be less than 1000 characters'
    model = payload.get('model')
    if model is not None and model not in generator.MODELS:
        details['model'] = 'Invalid AI model specified'
    if details:
        return validation_error(details)

    user_id = current_user_id()
    profile = get_profile(user_id)
    if profile is None:
        return _missing_profile()
    return _generate_response(user_id, query, profile, model)


@recipes_bp.route('/<recipe_id>/regenerate', methods=['POST'])
@limiter.limit(GENERATE_RATE_LIMIT)
def regenerate(recipe_id):
    """
    New recipe from an existing recipe's query and the current preferences.
    The source recipe is left untouched.
    """
    if not current_user.is_authenticated:
        return api_error('Unauthorized', GENERATE_UNAUTHORIZED_MESSAGE, 401)

    source, error = _owned_recipe_or_error(recipe_id)
    if error:
        return error

    payload = _json_object() or {}
    model = payload.get('model')
    if model is not None and model not in generator.MODELS:
        return validation_error({'model': 'Invalid AI model specified'})

    user_id = current_user_id()
    profile = get_profile(user_id)
    if profile is None:
        return _missing_profile()
    return _generate_response(user_id, source.user_query, profile, model,
                              regenerated_from_recipe_id=source.id)


def _missing_profile():
    return api_error('Profile not found', 'Uzupełnij profil przed generowaniem przepisów', 404)


def _generate_response(user_id, query, profile, model, **extra):
    try:
        recipe, usage = generator.generate_recipe(user_id, query, profile.preferences or [], model)
    except generator.GenerationLimitExceeded as e:
        response = api_error('Rate limit exceeded',
                             'Przekroczono limit generowania przepisów. Spróbuj ponownie później.',
                             429, retry_after=e.retry_after)
        response.headers['Retry-After'] = str(e.retry_after)
        return response
    except generator.RecipeGenerationError as e:
        logger.error(f"Recipe generation failed for user {user_id}: {e}")
        return api_error('Recipe generation failed',
                         'Nie udało się wygenerować przepisu. Spróbuj ponownie.', 502)

    body = recipe.to_dict()
    body.update(extra)
    body['user_preferences_applied'] = list(profile.preferences or [])
    body['ai_generation'] = generator.usage_payload(usage)
    return jsonify(body), 201
