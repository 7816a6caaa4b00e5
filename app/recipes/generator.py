"""
AI recipe generation.

Builds the prompt from the user's request and stored preferences, calls
OpenAI with the user's own key when one is stored (the application key
otherwise), parses the JSON answer and records token usage and cost.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

import openai
from flask import current_app

from app import db
from app.lib.llm_utils import ApiKeyError, decrypt_api_key, generate_with_openai
from app.lib.preferences import ALLERGY, CUISINE, DIET, split_by_category
from app.lib.time import isoformat, utcnow_naive
from app.models import AIUsage, Recipe, UserAPIKey
from app.profiles.service import count_generations_since

logger = logging.getLogger(__name__)


# Prices per 1K tokens (USD)
MODELS = {
    'gpt-4': {'name': 'GPT-4', 'max_tokens': 8192, 'input': 0.03, 'output': 0.06},
    'gpt-4o': {'name': 'GPT-4 Omni', 'max_tokens': 128000, 'input': 0.005, 'output': 0.015},
    'gpt-4o-mini': {'name': 'GPT-4 Omni Mini', 'max_tokens': 128000, 'input': 0.00015, 'output': 0.0006},
    'gpt-3.5-turbo': {'name': 'GPT-3.5 Turbo', 'max_tokens': 4096, 'input': 0.0015, 'output': 0.002},
}
DEFAULT_MODEL = 'gpt-4o-mini'
RATE_LIMIT_WINDOW = timedelta(hours=1)
MAX_QUERY_LENGTH = 1000

SYSTEM_PROMPT = (
    "You are a professional chef and nutritionist. Generate healthy, practical recipes "
    "based on user requests. IMPORTANT: Always generate recipes in Polish language. "
    "Always respond with valid JSON only, no additional text. CRITICAL: If the user has "
    "allergies, NEVER include those ingredients - this is a matter of health and safety. "
    "Double-check all ingredients against the allergy list before finalizing the recipe."
)

JSON_FORMAT = """{
  "title": "Nazwa Przepisu",
  "ingredients": ["składnik 1 z ilością", "składnik 2 z ilością", ...],
  "shopping_list": ["produkt 1 z ilością", "produkt 2 z ilością", ...],
  "instructions": ["krok 1", "krok 2", ...]
}"""


class RecipeGenerationError(Exception):
    """Provider call failed or returned something that is not a recipe."""


class GenerationLimitExceeded(Exception):
    def __init__(self, limit, retry_after):
        super().__init__("Rate limit exceeded: too many generations in the last hour")
        self.limit = limit
        self.retry_after = retry_after


@dataclass
class GeneratedRecipe:
    title: str
    ingredients: List[str] = field(default_factory=list)
    shopping_list: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    pricing = MODELS.get(model)
    if not pricing:
        return 0.0
    cost = (input_tokens / 1000) * pricing['input'] + (output_tokens / 1000) * pricing['output']
    return round(cost, 6)


def build_recipe_prompt(query: str, preferences: Optional[List[str]] = None) -> str:
    grouped = split_by_category(preferences or [])
    sections = []
    if grouped[DIET]:
        sections.append("Dietary Preferences:\n" + "\n".join(f"- {p.label}" for p in grouped[DIET]))
    if grouped[CUISINE]:
        sections.append("Cuisine Preferences:\n" + "\n".join(f"- {p.label}" for p in grouped[CUISINE]))

    allergies = grouped[ALLERGY]
    if allergies:
        sections.append(
            "CRITICAL - ALLERGIES TO AVOID (NEVER include these ingredients):\n"
            + "\n".join(f"- {p.label} ({p.description}) (ABSOLUTELY FORBIDDEN)" for p in allergies)
        )

    requirements = [
        "Generate the recipe entirely in Polish language",
        "Make the recipe practical and easy to follow",
        "Provide clear, step-by-step instructions",
        "Include a shopping list with quantities",
        "Ensure ingredients are commonly available",
        "Make the recipe healthy and balanced",
    ]
    if grouped[DIET] or grouped[CUISINE]:
        requirements.append("Consider user dietary preferences and cuisine choices")
    if allergies:
        names = ', '.join(p.label for p in allergies)
        requirements.append(
            f"Before finalizing, verify that NONE of these allergens appear in the ingredients, "
            f"shopping list or instructions, including derivatives: {names}"
        )

    preferences_text = ("\n\n" + "\n\n".join(sections)) if sections else ""
    return (
        "Generate a detailed recipe based on the following request:\n\n"
        f"User Request: {query}{preferences_text}\n\n"
        "IMPORTANT: Always generate the recipe in Polish language.\n\n"
        f"Please provide the recipe in the following JSON format:\n{JSON_FORMAT}\n\n"
        "Requirements:\n" + "\n".join(f"- {r}" for r in requirements)
    )


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith('```json'):
        cleaned = cleaned[len('```json'):]
    elif cleaned.startswith('```'):
        cleaned = cleaned[3:]
    if cleaned.endswith('```'):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def parse_recipe_response(text: str) -> GeneratedRecipe:
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse AI response: {text[:500]}")
        raise RecipeGenerationError("Invalid JSON response from AI") from e
    if not isinstance(data, dict):
        raise RecipeGenerationError("Invalid JSON response from AI")

    return GeneratedRecipe(
        title=str(data.get('title') or 'Generated Recipe')[:255],
        ingredients=_string_list(data.get('ingredients')),
        shopping_list=_string_list(data.get('shopping_list')),
        instructions=_string_list(data.get('instructions')),
    )


def check_generation_limit(user_id: str, now=None):
    limit = current_app.config.get('AI_MAX_GENERATIONS_PER_HOUR', 10)
    now = now or utcnow_naive()
    window_start = now - RATE_LIMIT_WINDOW
    if count_generations_since(user_id, window_start) < limit:
        return

    oldest = db.session.query(AIUsage.created_at).filter(
        AIUsage.user_id == user_id,
        AIUsage.created_at >= window_start,
    ).order_by(AIUsage.created_at.asc()).first()
    retry_after = 1
    if oldest is not None:
        retry_after = max(1, int((oldest[0] + RATE_LIMIT_WINDOW - now).total_seconds()))
    raise GenerationLimitExceeded(limit, retry_after)


def resolve_api_key(user_id: str):
    """
    (api_key, stored_key_row) for a generation; the row is None when the
    application key is used.
    """
    stored = UserAPIKey.query.filter_by(user_id=user_id, is_active=True).first()
    if stored is not None:
        try:
            return decrypt_api_key(stored.encrypted_api_key), stored
        except ApiKeyError as e:
            logger.error(f"Stored API key for user {user_id} is unusable, using application key: {e}")

    app_key = current_app.config.get('OPENAI_API_KEY')
    if not app_key:
        raise RecipeGenerationError("No OpenAI API key configured")
    return app_key, None


def generate_recipe(user_id: str, query: str, preferences: List[str], model: str = None):
    """
    Generate, persist and account for one recipe.

    Returns (recipe, usage). Raises GenerationLimitExceeded or
    RecipeGenerationError.
    """
    model = model or current_app.config.get('AI_DEFAULT_MODEL', DEFAULT_MODEL)
    if model not in MODELS:
        raise ValueError("Invalid AI model specified")

    check_generation_limit(user_id)
    api_key, stored_key = resolve_api_key(user_id)

    messages = [
        {'role': 'system', 'content': SYSTEM_PROMPT},
        {'role': 'user', 'content': build_recipe_prompt(query, preferences)},
    ]
    try:
        completion = generate_with_openai(
            api_key,
            messages,
            model=model,
            max_tokens=current_app.config.get('AI_MAX_TOKENS', 2000),
            temperature=current_app.config.get('AI_TEMPERATURE', 0.7),
        )
    except (openai.OpenAIError, ValueError) as e:
        logger.error(f"Error generating recipe with AI for user {user_id}: {e}")
        raise RecipeGenerationError("Recipe generation failed") from e

    generated = parse_recipe_response(completion.text)

    recipe = Recipe(
        user_id=user_id,
        title=generated.title,
        content={
            'ingredients': generated.ingredients,
            'shopping_list': generated.shopping_list,
            'instructions': generated.instructions,
        },
        user_query=query,
        preferences=list(preferences or []),
        is_visible=True,
    )
    db.session.add(recipe)
    db.session.flush()

    usage = AIUsage(
        user_id=user_id,
        recipe_id=recipe.id,
        model=model,
        input_tokens=completion.input_tokens,
        output_tokens=completion.output_tokens,
        cost=calculate_cost(model, completion.input_tokens, completion.output_tokens),
        used_own_key=stored_key is not None,
    )
    db.session.add(usage)
    if stored_key is not None:
        stored_key.mark_used()
    db.session.commit()

    logger.info(f"Generated recipe {recipe.id} for user {user_id} with {model} "
                f"({usage.input_tokens}+{usage.output_tokens} tokens)")
    return recipe, usage


def usage_payload(usage: AIUsage) -> dict:
    return {
        'id': usage.id,
        'model': usage.model,
        'input_tokens': usage.input_tokens,
        'output_tokens': usage.output_tokens,
        'cost': usage.cost,
        'created_at': isoformat(usage.created_at),
    }
