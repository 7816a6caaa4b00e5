"""
Recipe queries and owner-scoped mutations.
"""
import math
import uuid
from dataclasses import dataclass
from typing import Optional

from app import db
from app.lib.time import utcnow_naive
from app.models import Recipe, RecipeRating


SORT_OPTIONS = {
    'created_at.asc': (Recipe.created_at, 'asc'),
    'created_at.desc': (Recipe.created_at, 'desc'),
    'created_at_asc': (Recipe.created_at, 'asc'),
    'created_at_desc': (Recipe.created_at, 'desc'),
    'title.asc': (Recipe.title, 'asc'),
    'title.desc': (Recipe.title, 'desc'),
    'title_asc': (Recipe.title, 'asc'),
    'title_desc': (Recipe.title, 'desc'),
}
DEFAULT_SORT = 'created_at_desc'
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

RATING_VALUES = {'up': RecipeRating.UP, 'down': RecipeRating.DOWN}


class ListParamsError(ValueError):
    def __init__(self, details):
        super().__init__("Invalid query parameters")
        self.details = details


@dataclass
class ListParams:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    visible_only: bool = False
    sort: str = DEFAULT_SORT


def _parse_int(raw, name, default, minimum, maximum=None, details=None):
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        details[name] = f"{name} must be an integer"
        return default
    if value < minimum:
        details[name] = f"{name} must be at least {minimum}"
    elif maximum is not None and value > maximum:
        details[name] = f"{name} cannot exceed {maximum}"
    return value


def parse_list_params(args) -> ListParams:
    details = {}
    page = _parse_int(args.get('page'), 'page', 1, 1, details=details)
    limit = _parse_int(args.get('limit'), 'limit', DEFAULT_PAGE_SIZE, 1, MAX_PAGE_SIZE, details=details)
    sort = args.get('sort') or DEFAULT_SORT
    if sort not in SORT_OPTIONS:
        details['sort'] = f"sort must be one of: {', '.join(SORT_OPTIONS)}"
    visible_only = str(args.get('visible_only', 'false')).lower() == 'true'
    if details:
        raise ListParamsError(details)
    return ListParams(page=page, limit=limit, visible_only=visible_only, sort=sort)


def is_valid_recipe_id(recipe_id: str) -> bool:
    try:
        uuid.UUID(str(recipe_id))
    except ValueError:
        return False
    return True


def list_recipes(user_id: str, params: ListParams) -> dict:
    query = Recipe.query.filter_by(user_id=user_id)
    if params.visible_only:
        query = query.filter(Recipe.is_visible.is_(True))

    column, direction = SORT_OPTIONS[params.sort]
    query = query.order_by(column.asc() if direction == 'asc' else column.desc(), Recipe.id)

    total = query.count()
    items = query.offset((params.page - 1) * params.limit).limit(params.limit).all()
    return {
        'data': [recipe.to_list_item() for recipe in items],
        'pagination': {
            'page': params.page,
            'limit': params.limit,
            'total': total,
            'total_pages': math.ceil(total / params.limit) if total else 0,
        },
    }


def get_owned_recipe(user_id: str, recipe_id: str) -> Optional[Recipe]:
    return Recipe.query.filter_by(id=recipe_id, user_id=user_id).first()


def user_rating(recipe: Recipe, user_id: str) -> Optional[str]:
    rating = recipe.ratings.filter_by(user_id=user_id).first()
    return rating.label if rating else None


def set_visibility(recipe: Recipe, is_visible: bool) -> Recipe:
    recipe.is_visible = is_visible
    recipe.updated_at = utcnow_naive()
    db.session.commit()
    return recipe


def upsert_rating(recipe: Recipe, user_id: str, rating: str) -> RecipeRating:
    value = RATING_VALUES[rating]
    existing = RecipeRating.query.filter_by(recipe_id=recipe.id, user_id=user_id).first()
    if existing is None:
        existing = RecipeRating(recipe_id=recipe.id, user_id=user_id, rating=value)
        db.session.add(existing)
    else:
        existing.rating = value
        existing.updated_at = utcnow_naive()
    db.session.commit()
    return existing


def delete_rating(recipe: Recipe, user_id: str) -> bool:
    deleted = RecipeRating.query.filter_by(recipe_id=recipe.id, user_id=user_id).delete()
    db.session.commit()
    return bool(deleted)


def delete_recipe(recipe: Recipe):
    db.session.delete(recipe)
    db.session.commit()
