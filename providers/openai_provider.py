"""OpenAI and OpenAI-compatible (OpenRouter) provider implementations."""

import os
from typing import Any, Dict, Optional

from config import settings

from .base import LLMProvider, LLMResponse, to_provider_error

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenAIProvider(LLMProvider):
    """Provider for OpenAI models (JSON mode, schema as a textual hint)."""

    MODELS = {
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
        "gpt-4.1": "gpt-4.1",
        "gpt-4.1-mini": "gpt-4.1-mini",
    }

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. Uses settings, then OPENAI_API_KEY.
            timeout: Request timeout in seconds (settings.api_timeout_seconds by default)
        """
        self.api_key = api_key or settings.openai_api_key or os.environ.get("OPENAI_API_KEY")
        self.timeout = timeout or settings.api_timeout_seconds
        self._client = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    def _client_kwargs(self) -> Dict[str, Any]:
        return {"api_key": self.api_key, "timeout": self.timeout}

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(**self._client_kwargs())
        return self._client

    def _resolve_model(self, model: Optional[str]) -> str:
        if model is None:
            return self.default_model
        return self.MODELS.get(model, model)

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        response_schema: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        client = self._get_client()
        resolved_model = self._resolve_model(model)

        kwargs: Dict[str, Any] = {
            "model": resolved_model,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
        }
        if json_mode or response_schema:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = client.chat.completions.create(**kwargs)
        except Exception as e:
            raise to_provider_error(e, self.name) from e

        if not getattr(response, "choices", None):
            content = None
        else:
            content = response.choices[0].message.content
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=self._checked_content(content),
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=resolved_model,
            provider=self.name,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)


class OpenRouterProvider(OpenAIProvider):
    """Provider for OpenRouter (OpenAI-compatible API, any routed model)."""

    MODELS = {
        "gemini-2.0-flash": "google/gemini-2.0-flash-001",
        "gpt-4o-mini": "openai/gpt-4o-mini",
        "claude-sonnet": "anthropic/claude-sonnet-4",
    }

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize OpenRouter provider.

        Args:
            api_key: OpenRouter API key. Uses settings, then OPENROUTER_API_KEY.
            timeout: Request timeout in seconds (settings.api_timeout_seconds by default)
        """
        super().__init__(api_key=api_key, timeout=timeout)
        self.api_key = api_key or settings.openrouter_api_key or os.environ.get("OPENROUTER_API_KEY")

    @property
    def name(self) -> str:
        return "openrouter"

    @property
    def default_model(self) -> str:
        return "google/gemini-2.0-flash-001"

    def _client_kwargs(self) -> Dict[str, Any]:
        return {**super()._client_kwargs(), "base_url": OPENROUTER_BASE_URL}
