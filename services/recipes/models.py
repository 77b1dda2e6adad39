# services/recipes/models.py
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Generation request variants. Exactly one is active per call; see
# generation_service.parse_generation_request.
class IngredientGenerationRequest(BaseModel):
    ingredients: list[str] = Field(..., min_length=1, max_length=20)
    dietary_restrictions: list[str] = Field(default_factory=list, max_length=10)
    allergens: list[str] = Field(default_factory=list, max_length=10)


class ReferenceRecipe(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    ingredients: list[str] = Field(default_factory=list, max_length=50)


class ReferenceGenerationRequest(BaseModel):
    reference_recipe: ReferenceRecipe


GenerationRequest = Union[IngredientGenerationRequest, ReferenceGenerationRequest]


class Recipe(BaseModel):
    id: str
    title: str
    description: str
    ingredients: list[str]
    instructions: str
    dietary_restrictions: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    prep_time: int  # minutes
    cook_time: int  # minutes
    servings: int
    difficulty: Difficulty
    calories: int
    image_url: Optional[str] = None


class RecipesResponse(BaseModel):
    recipes: list[Recipe]


class RecipeResponse(BaseModel):
    recipe: Recipe


class ErrorResponse(BaseModel):
    error: str


class UserProfile(BaseModel):
    user_id: str
    credits: int
    last_credit_reset: Optional[datetime] = None


class QuotaStatus(BaseModel):
    credits: int
    last_credit_reset: datetime
    next_reset_at: datetime
    was_reset: bool = False


class CreditsResponse(BaseModel):
    credits: int
    last_credit_reset: datetime
    next_reset_at: datetime
