# services/recipes/generation_service.py
import logging
from typing import Any, Union
from uuid import UUID

from exceptions import InputError, ProviderError
from extraction import extract_recipes, extract_reference_recipe
from input_safety import (
    MAX_ALLERGENS,
    MAX_COMBINED_INPUT_LENGTH,
    MAX_DIETARY_RESTRICTIONS,
    MAX_INGREDIENTS,
    MAX_REFERENCE_DESCRIPTION_LENGTH,
    MAX_REFERENCE_INGREDIENT_LENGTH,
    MAX_REFERENCE_INGREDIENTS,
    MAX_REFERENCE_TITLE_LENGTH,
    input_sanitizer,
)
from models import (
    GenerationRequest,
    IngredientGenerationRequest,
    RecipeResponse,
    RecipesResponse,
    ReferenceGenerationRequest,
    ReferenceRecipe,
)
from prompts import build_prompt
from quota import QuotaLedger

from shared.llm_client import GenerationProvider, LLMError

logger = logging.getLogger(__name__)


def parse_generation_request(body: Any) -> GenerationRequest:
    """
    Resolve the request body into exactly one request variant.

    A `reference_recipe` key selects the reference variant; anything else is
    treated as an ingredient request. Lists are cleaned and truncated to their
    caps rather than rejected.
    """
    if not isinstance(body, dict):
        raise InputError("Invalid request body")

    if body.get("reference_recipe"):
        reference = body["reference_recipe"]
        if not isinstance(reference, dict):
            raise InputError("Invalid reference recipe")

        title = input_sanitizer.sanitize_text(reference.get("title"), MAX_REFERENCE_TITLE_LENGTH)
        if not title:
            raise InputError("Reference recipe requires a title")

        return ReferenceGenerationRequest(
            reference_recipe=ReferenceRecipe(
                title=title,
                description=input_sanitizer.sanitize_text(
                    reference.get("description"), MAX_REFERENCE_DESCRIPTION_LENGTH
                ),
                ingredients=input_sanitizer.sanitize_entries(
                    reference.get("ingredients"),
                    MAX_REFERENCE_INGREDIENTS,
                    MAX_REFERENCE_INGREDIENT_LENGTH,
                ),
            )
        )

    ingredients = input_sanitizer.sanitize_entries(body.get("ingredients"), MAX_INGREDIENTS)
    dietary = input_sanitizer.sanitize_entries(
        body.get("dietary_restrictions"), MAX_DIETARY_RESTRICTIONS
    )
    allergens = input_sanitizer.sanitize_entries(body.get("allergens"), MAX_ALLERGENS)

    if not ingredients:
        raise InputError("At least one valid ingredient is required")

    if input_sanitizer.combined_length(ingredients, dietary, allergens) > MAX_COMBINED_INPUT_LENGTH:
        raise InputError("Input data too large")

    return IngredientGenerationRequest(
        ingredients=ingredients, dietary_restrictions=dietary, allergens=allergens
    )


class RecipeGenerationService:
    """
    Runs one generation call: quota check, prompt, provider call, extraction,
    debit. Each step is awaited in order; the first failure ends the call.
    """

    def __init__(self, ledger: QuotaLedger, provider: GenerationProvider):
        self.ledger = ledger
        self.provider = provider

    async def generate(
        self, user_id: UUID, body: Any
    ) -> Union[RecipesResponse, RecipeResponse]:
        logger.info(f"🍳 GENERATE: Starting generation for user {user_id}")

        # Reset (if due) is persisted before anything else can fail
        await self.ledger.evaluate(user_id)

        request = parse_generation_request(body)
        is_reference = isinstance(request, ReferenceGenerationRequest)
        logger.info(
            f"📂 GENERATE: {'reference' if is_reference else 'ingredient'} request for user {user_id}"
        )

        prompt = build_prompt(request)

        try:
            generated_text = await self.provider.generate(prompt)
        except LLMError as e:
            logger.error(
                f"❌ GENERATE: Provider {e.provider} failed (status {e.status_code}): {e}"
            )
            raise ProviderError(detail=str(e))

        if is_reference:
            result = RecipeResponse(recipe=extract_reference_recipe(generated_text))
            titles = [result.recipe.title]
        else:
            result = RecipesResponse(
                recipes=extract_recipes(
                    generated_text, request.dietary_restrictions, request.allergens
                )
            )
            titles = [recipe.title for recipe in result.recipes]

        logger.info(f"🤖 GENERATE: Generated {len(titles)} recipe(s): {titles}")

        # The user keeps the recipes even if the debit cannot be written
        try:
            await self.ledger.debit(user_id)
        except Exception as e:
            logger.error(f"❌ GENERATE: Failed to update credits for user {user_id}: {e}")

        return result
