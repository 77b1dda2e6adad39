# services/recipes/extraction.py
"""
Turns raw model output into strictly typed recipes.

Field problems never fail a call: each field is coerced on its own and falls
back to a default. Only a missing or unparseable JSON object (or one with no
usable recipe in it) raises ParseError.
"""

import logging
import math
import re
from typing import Any, Optional

from exceptions import ParseError
from models import Difficulty, Recipe
from prompts import RECIPES_PER_REQUEST

from shared.json_utils import JSONExtractionError, extract_json_object
from shared.uuid_utils import generate_uuid7

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Recette sans nom"
DEFAULT_DESCRIPTION = "Délicieuse recette"
DEFAULT_INSTRUCTIONS = "Instructions non disponibles"
DEFAULT_PREP_TIME = 15
DEFAULT_COOK_TIME = 30
DEFAULT_SERVINGS = 4
DEFAULT_CALORIES = 500
DEFAULT_DIFFICULTY = Difficulty.MEDIUM

# Upper bound of a Postgres INTEGER column
MAX_NUMERIC_VALUE = 2**31 - 1

_NUMERIC_STRING = re.compile(r"^\d+(\.\d+)?$")


def coerce_text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def coerce_positive_int(value: Any, default: int) -> int:
    """
    Integers, floats and numeric strings. Zero, negatives, booleans and
    values past MAX_NUMERIC_VALUE use the default.
    """
    if isinstance(value, bool):
        return default

    # JSON integers can be arbitrarily large; never convert those to float
    if isinstance(value, int):
        number = value
    else:
        if isinstance(value, str):
            value = value.strip()
            if not _NUMERIC_STRING.match(value):
                return default
            value = float(value)

        if not isinstance(value, float) or not math.isfinite(value):
            return default
        number = int(round(value))

    return number if 0 < number <= MAX_NUMERIC_VALUE else default


def coerce_string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def coerce_instructions(value: Any) -> str:
    # Models sometimes return the steps as an array
    if isinstance(value, list):
        value = "\n".join(coerce_string_list(value))
    return coerce_text(value, DEFAULT_INSTRUCTIONS)


def coerce_difficulty(value: Any) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    if isinstance(value, str):
        try:
            return Difficulty(value.strip().lower())
        except ValueError:
            pass
    return DEFAULT_DIFFICULTY


def coerce_image_url(value: Any) -> Optional[str]:
    if isinstance(value, str):
        url = value.strip()
        if url.startswith(("https://", "http://")):
            return url
    return None


def coerce_recipe(
    payload: Any,
    recipe_id: str,
    dietary_restrictions: Optional[list[str]] = None,
    allergens: Optional[list[str]] = None,
) -> Recipe:
    """
    Build a complete Recipe from a loosely typed payload.

    Every field is coerced independently. `dietary_restrictions` and
    `allergens` always come from the request, never from the payload.
    Coercing the dumped result again with the same arguments returns an
    equal Recipe.
    """
    data = payload if isinstance(payload, dict) else {}

    return Recipe(
        id=recipe_id,
        title=coerce_text(data.get("title"), DEFAULT_TITLE),
        description=coerce_text(data.get("description"), DEFAULT_DESCRIPTION),
        ingredients=coerce_string_list(data.get("ingredients")),
        instructions=coerce_instructions(data.get("instructions")),
        dietary_restrictions=list(dietary_restrictions or []),
        allergens=list(allergens or []),
        prep_time=coerce_positive_int(data.get("prep_time"), DEFAULT_PREP_TIME),
        cook_time=coerce_positive_int(data.get("cook_time"), DEFAULT_COOK_TIME),
        servings=coerce_positive_int(data.get("servings"), DEFAULT_SERVINGS),
        difficulty=coerce_difficulty(data.get("difficulty")),
        calories=coerce_positive_int(data.get("calories"), DEFAULT_CALORIES),
        image_url=coerce_image_url(data.get("image_url")),
    )


def _parse_payload(text: str) -> dict:
    try:
        return extract_json_object(text)
    except JSONExtractionError as e:
        logger.error(f"❌ EXTRACT: Failed to parse AI response: {e}")
        raise ParseError(detail=f"Failed to parse recipe data from AI response: {e}")


def extract_recipes(
    text: str, dietary_restrictions: list[str], allergens: list[str]
) -> list[Recipe]:
    """Parse a `{"recipes": [...]}` payload into at most three recipes with fresh ids"""
    payload = _parse_payload(text)

    entries = payload.get("recipes")
    if not isinstance(entries, list):
        raise ParseError(detail="Invalid recipe format from AI: 'recipes' is not a list")

    recipes = [
        coerce_recipe(entry, str(generate_uuid7()), dietary_restrictions, allergens)
        for entry in entries[:RECIPES_PER_REQUEST]
        if isinstance(entry, dict)
    ]
    if not recipes:
        raise ParseError(detail="AI response contained no recipe objects")

    if len(recipes) < RECIPES_PER_REQUEST:
        logger.warning(f"⚠️ EXTRACT: Only {len(recipes)} usable recipes in AI response")
    return recipes


def extract_reference_recipe(text: str) -> Recipe:
    """Parse the single recipe returned for a reference request"""
    payload = _parse_payload(text)

    # Tolerate the model wrapping its answer like the multi-recipe contract
    if isinstance(payload.get("recipe"), dict):
        payload = payload["recipe"]
    elif isinstance(payload.get("recipes"), list) and "title" not in payload:
        candidates = [entry for entry in payload["recipes"] if isinstance(entry, dict)]
        if not candidates:
            raise ParseError(detail="AI response contained no recipe objects")
        payload = candidates[0]

    return coerce_recipe(payload, str(generate_uuid7()))
