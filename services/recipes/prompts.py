# services/recipes/prompts.py
"""
Prompt construction for recipe generation.

Pure functions: no I/O. Every list is re-capped and re-sanitized here so a
prompt can never grow past the documented limits, whoever calls the builder.
"""

from input_safety import (
    MAX_ALLERGENS,
    MAX_DIETARY_RESTRICTIONS,
    MAX_INGREDIENTS,
    MAX_REFERENCE_DESCRIPTION_LENGTH,
    MAX_REFERENCE_INGREDIENT_LENGTH,
    MAX_REFERENCE_INGREDIENTS,
    MAX_REFERENCE_TITLE_LENGTH,
    input_sanitizer,
)
from models import IngredientGenerationRequest, ReferenceGenerationRequest

RECIPES_PER_REQUEST = 3

ROLE_FRAMING = "Tu es un chef cuisinier expert."

RECIPE_SCHEMA_FIELDS = (
    "title",
    "description",
    "ingredients",
    "instructions",
    "prep_time",
    "cook_time",
    "servings",
    "difficulty",
    "calories",
    "image_url",
)

RECIPE_JSON_TEMPLATE = """{
  "title": "nom de la recette",
  "description": "description courte et appétissante",
  "ingredients": ["ingrédient 1 avec quantité", "ingrédient 2 avec quantité", "etc"],
  "instructions": "instructions détaillées étape par étape (1. ..., 2. ..., 3. ...)",
  "prep_time": nombre_minutes_preparation,
  "cook_time": nombre_minutes_cuisson,
  "servings": nombre_portions,
  "difficulty": "easy" ou "medium" ou "hard",
  "calories": nombre_calories,
  "image_url": "URL d'une image libre sur internet illustrant la recette (recherche par nom de recette)"
}"""

JSON_ONLY_RULES = """- Fournis des instructions détaillées et pratiques
- Assure-toi que les temps sont réalistes
- Réponds UNIQUEMENT avec le JSON valide, rien d'autre
- Assure-toi que chaque recette contient obligatoirement tous les champs demandés"""


def _indent(block: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in block.splitlines())


def build_ingredient_prompt(request: IngredientGenerationRequest) -> str:
    """Prompt asking for exactly three recipes built from the given ingredients"""
    ingredients = input_sanitizer.sanitize_entries(request.ingredients, MAX_INGREDIENTS)
    dietary = input_sanitizer.sanitize_entries(
        request.dietary_restrictions, MAX_DIETARY_RESTRICTIONS
    )
    allergens = input_sanitizer.sanitize_entries(request.allergens, MAX_ALLERGENS)

    criteria = [f"Ingrédients disponibles : {', '.join(ingredients)}"]
    if dietary:
        criteria.append(f"Régimes alimentaires : {', '.join(dietary)}")
    if allergens:
        criteria.append(f"Allergènes à éviter : {', '.join(allergens)}")
    criteria_text = "\n".join(criteria)

    schema = '{\n  "recipes": [\n' + _indent(RECIPE_JSON_TEMPLATE, "    ") + "\n  ]\n}"

    return f"""{ROLE_FRAMING} Génère exactement {RECIPES_PER_REQUEST} recettes différentes basées sur ces critères :

{criteria_text}

Pour chaque recette, fournis EXACTEMENT le format JSON suivant (sans texte additionnel) :

{schema}

IMPORTANT :
- Utilise au maximum les ingrédients fournis
- Respecte strictement les régimes alimentaires mentionnés
- Évite complètement les allergènes listés
- Pour chaque recette, fournis dans le champ image_url l'URL d'une image libre correspondant au nom de la recette
{JSON_ONLY_RULES}"""


def build_reference_prompt(request: ReferenceGenerationRequest) -> str:
    """Prompt asking for one recipe that pairs with or resembles a reference recipe"""
    reference = request.reference_recipe
    title = input_sanitizer.sanitize_text(reference.title, MAX_REFERENCE_TITLE_LENGTH)
    description = input_sanitizer.sanitize_text(
        reference.description, MAX_REFERENCE_DESCRIPTION_LENGTH
    )
    ingredients = input_sanitizer.sanitize_entries(
        reference.ingredients, MAX_REFERENCE_INGREDIENTS, MAX_REFERENCE_INGREDIENT_LENGTH
    )

    return f"""{ROLE_FRAMING} Propose une recette qui se marie parfaitement avec la recette suivante ou qui est très similaire : {title}.

Voici la recette de référence :
{description}

Ingrédients : {', '.join(ingredients)}

Donne une recette complète au format JSON suivant (sans texte additionnel) :

{RECIPE_JSON_TEMPLATE}

IMPORTANT :
- La recette doit être originale et complémentaire ou très proche de la recette de référence
- Utilise des ingrédients cohérents
{JSON_ONLY_RULES}"""


def build_prompt(request) -> str:
    """Dispatch on the request variant"""
    if isinstance(request, ReferenceGenerationRequest):
        return build_reference_prompt(request)
    return build_ingredient_prompt(request)
