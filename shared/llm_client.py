# shared/llm_client.py
"""
Text-generation client for cuisine services.

Providers are interchangeable strategies behind `GenerationProvider`. A single
request is issued per call: there is no retry or fallback, so a failed call
fails the whole generation.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


class LLMError(Exception):
    """Base exception for LLM client errors"""

    def __init__(
        self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling parameters sent with every request"""

    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 2048
    timeout_seconds: float = 60.0


class GenerationProvider(ABC):
    """Sends a prompt to a text-generation service and returns the raw text."""

    name = "unknown"

    def __init__(self, config: Optional[GenerationConfig] = None, transport=None):
        self.config = config or GenerationConfig()
        # Only set in tests, to route requests through httpx.MockTransport
        self._transport = transport

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the generated text for `prompt` or raise LLMError."""

    async def _post(self, url: str, headers: dict, body: dict, params: Optional[dict] = None) -> dict:
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(url, headers=headers, params=params, json=body)
        except httpx.TimeoutException:
            raise LLMError(f"Timeout calling {self.name} API", provider=self.name, status_code=408)
        except httpx.HTTPError as e:
            raise LLMError(
                f"Connection error to {self.name} API: {type(e).__name__}",
                provider=self.name,
                status_code=503,
            )

        if not response.is_success:
            logger.error(
                f"❌ LLM_CLIENT: {self.name} request failed with status {response.status_code}"
            )
            raise LLMError(
                "External API service temporarily unavailable",
                provider=self.name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            raise LLMError(
                f"Invalid response from {self.name}: body is not JSON", provider=self.name
            )


class GeminiProvider(GenerationProvider):
    """Google Gemini `generateContent` endpoint."""

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: Optional[str] = None,
        config: Optional[GenerationConfig] = None,
        transport=None,
    ):
        super().__init__(config, transport)
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY")
        self.model_id = model_id or os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

    def build_request_body(self, prompt: str) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "topK": self.config.top_k,
                "topP": self.config.top_p,
                "maxOutputTokens": self.config.max_output_tokens,
            },
        }

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise LLMError("GEMINI_API_KEY not configured", provider=self.name)

        logger.info(f"🤖 LLM_CLIENT: Calling {self.name}/{self.model_id}")
        result = await self._post(
            f"{GEMINI_API_BASE}/{self.model_id}:generateContent",
            headers={"Content-Type": "application/json"},
            params={"key": self.api_key},
            body=self.build_request_body(prompt),
        )

        try:
            return result["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Invalid response from AI service: {e!r}", provider=self.name)


class OpenAICompatibleProvider(GenerationProvider):
    """Chat completions API (OpenAI or any server exposing the same contract)."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: Optional[str] = None,
        base_url: Optional[str] = None,
        config: Optional[GenerationConfig] = None,
        transport=None,
    ):
        super().__init__(config, transport)
        self.api_key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY")
        self.model_id = model_id or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.base_url = (base_url or os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")).rstrip(
            "/"
        )

    def build_request_body(self, prompt: str) -> dict:
        # Chat completions has no top_k parameter
        return {
            "model": self.model_id,
            "max_completion_tokens": self.config.max_output_tokens,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "messages": [{"role": "user", "content": prompt}],
        }

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise LLMError("OPENAI_API_KEY not configured", provider=self.name)

        logger.info(f"🤖 LLM_CLIENT: Calling {self.name}/{self.model_id}")
        result = await self._post(
            f"{self.base_url}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            body=self.build_request_body(prompt),
        )

        try:
            return result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Invalid response from AI service: {e!r}", provider=self.name)


PROVIDERS = {
    GeminiProvider.name: GeminiProvider,
    OpenAICompatibleProvider.name: OpenAICompatibleProvider,
}


def create_provider(name: Optional[str] = None) -> GenerationProvider:
    """Build the provider selected by GENERATION_PROVIDER (default: gemini)."""
    name = (name or os.getenv("GENERATION_PROVIDER", "gemini")).lower()
    if name not in PROVIDERS:
        raise ValueError(f"Unsupported generation provider: {name}")
    return PROVIDERS[name]()
