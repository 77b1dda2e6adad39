import json
import os
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt
import pytz
from faker import Faker
from models import UserProfile
from quota import ProfileStore

from shared.llm_client import GenerationProvider, LLMError

fake = Faker("fr_FR")


class InMemoryProfileStore(ProfileStore):
    """Profile store backed by a dict, with switches to simulate outages"""

    def __init__(self):
        self.profiles: dict[uuid.UUID, UserProfile] = {}
        self.reset_calls = 0
        self.decrement_calls = 0
        self.fail_fetch = False
        self.fail_reset = False
        self.fail_decrement = False

    def add(self, user_id: uuid.UUID, credits: int, last_credit_reset: Optional[datetime]):
        self.profiles[user_id] = UserProfile(
            user_id=str(user_id), credits=credits, last_credit_reset=last_credit_reset
        )

    def credits(self, user_id: uuid.UUID) -> int:
        return self.profiles[user_id].credits

    async def fetch_profile(self, user_id: uuid.UUID) -> Optional[UserProfile]:
        if self.fail_fetch:
            raise ConnectionError("profile store unreachable")
        profile = self.profiles.get(user_id)
        return profile.model_copy() if profile else None

    async def reset_credits(self, user_id: uuid.UUID, credits: int, reset_at: datetime) -> None:
        self.reset_calls += 1
        if self.fail_reset:
            raise ConnectionError("profile store unreachable")
        profile = self.profiles[user_id]
        profile.credits = credits
        profile.last_credit_reset = reset_at

    async def decrement_credits(self, user_id: uuid.UUID) -> Optional[int]:
        self.decrement_calls += 1
        if self.fail_decrement:
            raise ConnectionError("profile store unreachable")
        profile = self.profiles[user_id]
        if profile.credits <= 0:
            return None
        profile.credits -= 1
        return profile.credits


class StubProvider(GenerationProvider):
    """Returns canned text and records every prompt it receives"""

    name = "stub"

    def __init__(self, text: str = "", error: Optional[LLMError] = None):
        super().__init__()
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.text


def make_recipe_payload(**overrides) -> dict[str, Any]:
    recipe = {
        "title": fake.sentence(nb_words=3).rstrip("."),
        "description": fake.sentence(nb_words=10),
        "ingredients": ["2 tomates", "300 g de poulet", "1 oignon"],
        "instructions": "1. Couper les légumes.\n2. Cuire le poulet.\n3. Servir.",
        "prep_time": 20,
        "cook_time": 35,
        "servings": 2,
        "difficulty": "easy",
        "calories": 620,
        "image_url": "https://images.example.org/recette.jpg",
    }
    recipe.update(overrides)
    return recipe


def wrap_in_prose(payload: Any) -> str:
    """Model output with text and a code fence around the JSON"""
    return f"Voici vos recettes :\n```json\n{json.dumps(payload, ensure_ascii=False)}\n```\nBon appétit !"


def make_token(subject: str, secret: Optional[str] = None, expires_in: timedelta = timedelta(hours=1)) -> str:
    """HS256 bearer token shaped like the identity provider's"""
    return jwt.encode(
        {
            "sub": subject,
            "email": fake.email(),
            "role": "authenticated",
            "aud": "authenticated",
            "exp": datetime.now(pytz.UTC) + expires_in,
        },
        secret or os.environ["JWT_SECRET_KEY"],
        algorithm="HS256",
    )
