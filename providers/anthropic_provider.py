"""Anthropic (Claude) provider implementation."""

import os
from typing import Any, Dict, Optional

from config import settings

from .base import LLMProvider, LLMResponse, to_provider_error


class AnthropicProvider(LLMProvider):
    """Provider for Anthropic Claude models (schema as a textual hint)."""

    MODELS = {
        "claude-sonnet": "claude-sonnet-4-20250514",
        "claude-haiku": "claude-3-5-haiku-20241022",
        "sonnet": "claude-sonnet-4-20250514",
        "haiku": "claude-3-5-haiku-20241022",
    }

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key. Uses settings, then ANTHROPIC_API_KEY.
            timeout: Request timeout in seconds (settings.api_timeout_seconds by default)
        """
        self.api_key = api_key or settings.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.timeout = timeout or settings.api_timeout_seconds
        self._client = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    def _get_client(self):
        if self._client is None:
            from anthropic import Anthropic
            self._client = Anthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def _resolve_model(self, model: Optional[str]) -> str:
        """Resolve model alias to full model name."""
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

        try:
            response = client.messages.create(
                model=resolved_model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
        except Exception as e:
            raise to_provider_error(e, self.name) from e

        text = "".join(getattr(block, "text", "") for block in response.content or [])
        return LLMResponse(
            content=self._checked_content(text),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=resolved_model,
            provider=self.name,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)
