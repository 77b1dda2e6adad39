"""Tests for turning model output into typed recipes."""

import json
from uuid import UUID

import pytest
from exceptions import ParseError
from extraction import (
    DEFAULT_CALORIES,
    DEFAULT_COOK_TIME,
    DEFAULT_DESCRIPTION,
    DEFAULT_INSTRUCTIONS,
    DEFAULT_PREP_TIME,
    DEFAULT_SERVINGS,
    DEFAULT_TITLE,
    coerce_positive_int,
    coerce_recipe,
    extract_recipes,
    extract_reference_recipe,
)
from helpers import make_recipe_payload, wrap_in_prose
from models import Difficulty

RECIPE_ID = "0190f0a2-6c1e-7c3a-9b1e-2a4f6d8e0c11"


class TestCoerceRecipeDefaults:
    """Each missing or invalid field falls back on its own."""

    def test_missing_calories_defaults_to_500(self):
        payload = make_recipe_payload()
        del payload["calories"]
        recipe = coerce_recipe(payload, RECIPE_ID)
        assert recipe.calories == DEFAULT_CALORIES == 500
        assert recipe.servings == 2

    def test_missing_servings_defaults_to_4(self):
        payload = make_recipe_payload()
        del payload["servings"]
        recipe = coerce_recipe(payload, RECIPE_ID)
        assert recipe.servings == DEFAULT_SERVINGS == 4
        assert recipe.calories == 620

    def test_missing_difficulty_defaults_to_medium(self):
        payload = make_recipe_payload()
        del payload["difficulty"]
        assert coerce_recipe(payload, RECIPE_ID).difficulty == Difficulty.MEDIUM

    @pytest.mark.parametrize("value", ["expert", "", 3, None, ["easy"]])
    def test_invalid_difficulty_defaults_to_medium(self, value):
        payload = make_recipe_payload(difficulty=value)
        assert coerce_recipe(payload, RECIPE_ID).difficulty == Difficulty.MEDIUM

    def test_difficulty_is_case_insensitive(self):
        payload = make_recipe_payload(difficulty=" Hard ")
        assert coerce_recipe(payload, RECIPE_ID).difficulty == Difficulty.HARD

    def test_missing_times_default(self):
        payload = make_recipe_payload()
        del payload["prep_time"]
        payload["cook_time"] = "longtemps"
        recipe = coerce_recipe(payload, RECIPE_ID)
        assert recipe.prep_time == DEFAULT_PREP_TIME == 15
        assert recipe.cook_time == DEFAULT_COOK_TIME == 30

    def test_non_string_title_and_description_default(self):
        payload = make_recipe_payload(title=42, description=None)
        recipe = coerce_recipe(payload, RECIPE_ID)
        assert recipe.title == DEFAULT_TITLE == "Recette sans nom"
        assert recipe.description == DEFAULT_DESCRIPTION == "Délicieuse recette"

    def test_missing_instructions_default(self):
        payload = make_recipe_payload()
        del payload["instructions"]
        assert coerce_recipe(payload, RECIPE_ID).instructions == DEFAULT_INSTRUCTIONS

    def test_instruction_list_is_joined(self):
        payload = make_recipe_payload(instructions=["1. Couper", "2. Cuire", 3])
        assert coerce_recipe(payload, RECIPE_ID).instructions == "1. Couper\n2. Cuire"

    def test_non_array_ingredients_become_empty(self):
        payload = make_recipe_payload(ingredients="tomates, poulet")
        assert coerce_recipe(payload, RECIPE_ID).ingredients == []

    def test_ingredient_entries_must_be_strings(self):
        payload = make_recipe_payload(ingredients=["2 tomates", None, 3, "  ", "sel"])
        assert coerce_recipe(payload, RECIPE_ID).ingredients == ["2 tomates", "sel"]

    def test_image_url_must_be_http(self):
        assert coerce_recipe(make_recipe_payload(image_url="ftp://x"), RECIPE_ID).image_url is None
        assert coerce_recipe(make_recipe_payload(image_url=None), RECIPE_ID).image_url is None

    def test_echo_fields_come_from_request_not_payload(self):
        payload = make_recipe_payload(dietary_restrictions=["Vegan"], allergens=["Noix"])
        recipe = coerce_recipe(payload, RECIPE_ID, ["Végétarien"], [])
        assert recipe.dietary_restrictions == ["Végétarien"]
        assert recipe.allergens == []

    def test_non_object_payload_yields_all_defaults(self):
        recipe = coerce_recipe("pas une recette", RECIPE_ID)
        assert recipe.title == DEFAULT_TITLE
        assert recipe.ingredients == []
        assert recipe.image_url is None


class TestCoercePositiveInt:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (25, 25),
            (25.4, 25),
            ("40", 40),
            (" 12.6 ", 13),
            ("25 minutes", 7),
            (0, 7),
            (-5, 7),
            (True, 7),
            (None, 7),
            (float("nan"), 7),
            ([30], 7),
            (10**400, 7),
            (2**31, 7),
            (2**31 - 1, 2**31 - 1),
            ("9" * 400, 7),
            (1e300, 7),
        ],
    )
    def test_coercion(self, value, expected):
        assert coerce_positive_int(value, 7) == expected


class TestCoercionIsStable:
    @pytest.mark.parametrize(
        "payload",
        [
            make_recipe_payload(),
            {"title": "  Soupe  ", "servings": "6", "difficulty": "HARD", "instructions": ["a", "b"]},
            {},
        ],
    )
    def test_recoercing_output_is_a_fixed_point(self, payload):
        first = coerce_recipe(payload, RECIPE_ID, ["Sans gluten"], ["Arachides"])

        again_python = coerce_recipe(first.model_dump(), RECIPE_ID, ["Sans gluten"], ["Arachides"])
        again_json = coerce_recipe(
            json.loads(first.model_dump_json()), RECIPE_ID, ["Sans gluten"], ["Arachides"]
        )

        assert again_python == first
        assert again_json == first


class TestExtractRecipes:
    def test_three_recipes_with_fresh_ids(self, three_recipes_text):
        recipes = extract_recipes(three_recipes_text, ["Végétarien"], [])

        assert len(recipes) == 3
        ids = {recipe.id for recipe in recipes}
        assert len(ids) == 3
        for recipe in recipes:
            assert UUID(recipe.id).version == 7
            assert recipe.dietary_restrictions == ["Végétarien"]
            assert recipe.allergens == []

    def test_ids_from_the_model_are_ignored(self):
        text = wrap_in_prose({"recipes": [make_recipe_payload(id="mon-id")]})
        assert extract_recipes(text, [], [])[0].id != "mon-id"

    def test_at_most_three_recipes_are_kept(self):
        text = wrap_in_prose({"recipes": [make_recipe_payload(title=f"R{i}") for i in range(5)]})
        recipes = extract_recipes(text, [], [])
        assert [recipe.title for recipe in recipes] == ["R0", "R1", "R2"]

    def test_non_object_entries_are_skipped(self):
        text = wrap_in_prose({"recipes": ["texte", make_recipe_payload(title="Gratin")]})
        recipes = extract_recipes(text, [], [])
        assert [recipe.title for recipe in recipes] == ["Gratin"]

    def test_partial_recipe_is_backfilled(self):
        text = wrap_in_prose({"recipes": [{"title": "Omelette"}]})
        recipe = extract_recipes(text, [], ["Lait"])[0]
        assert recipe.title == "Omelette"
        assert recipe.calories == 500
        assert recipe.servings == 4
        assert recipe.difficulty == Difficulty.MEDIUM
        assert recipe.allergens == ["Lait"]

    @pytest.mark.parametrize(
        "text",
        [
            "Désolé, je ne peux pas répondre.",
            "",
            "} rien {",
            "{ pas du json }",
            "[1, 2, 3]",
        ],
    )
    def test_text_without_json_object_fails(self, text):
        with pytest.raises(ParseError) as exc_info:
            extract_recipes(text, [], [])
        assert exc_info.value.status_code == 500

    def test_huge_integer_field_falls_back(self):
        text = json.dumps({"recipes": [{"title": "Pot-au-feu", "calories": int("9" * 400)}]})
        recipe = extract_recipes(text, [], [])[0]
        assert recipe.title == "Pot-au-feu"
        assert recipe.calories == DEFAULT_CALORIES

    def test_stray_brace_after_object_still_parses(self):
        text = json.dumps({"recipes": [make_recipe_payload(title="Tajine")]}) + "\nNote : {fin}"
        assert extract_recipes(text, [], [])[0].title == "Tajine"

    @pytest.mark.parametrize(
        "payload", [{"recipe": make_recipe_payload()}, {"recipes": "aucune"}, {"recipes": []}]
    )
    def test_missing_recipe_list_fails(self, payload):
        with pytest.raises(ParseError):
            extract_recipes(wrap_in_prose(payload), [], [])


class TestExtractReferenceRecipe:
    def test_single_object(self):
        text = wrap_in_prose(make_recipe_payload(title="Ratatouille", servings="3"))
        recipe = extract_reference_recipe(text)
        assert recipe.title == "Ratatouille"
        assert recipe.servings == 3
        assert recipe.dietary_restrictions == []
        assert recipe.allergens == []

    def test_wrapped_object_is_unwrapped(self):
        text = wrap_in_prose({"recipes": [make_recipe_payload(title="Quiche")]})
        assert extract_reference_recipe(text).title == "Quiche"

    def test_unparseable_text_fails(self):
        with pytest.raises(ParseError):
            extract_reference_recipe("Voici une idée : un gâteau.")
