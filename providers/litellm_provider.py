"""LiteLLM-backed provider: one implementation for every vendor LiteLLM routes to."""

import logging
from typing import Any, Dict, Optional

from .base import LLMProvider, LLMResponse, to_provider_error

logger = logging.getLogger(__name__)


# LiteLLM model strings: provider/model-name (OpenAI can omit prefix)
DEFAULT_MODELS = {
    "anthropic": "anthropic/claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "gemini": "gemini/gemini-2.0-flash",
    "openrouter": "openrouter/google/gemini-2.0-flash-001",
}

MODEL_ALIASES = {
    "anthropic": {
        "claude-sonnet": "anthropic/claude-sonnet-4-20250514",
        "claude-haiku": "anthropic/claude-3-5-haiku-20241022",
    },
    "openai": {
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
    },
    "gemini": {
        "gemini-2.0-flash": "gemini/gemini-2.0-flash",
        "gemini-2.5-flash": "gemini/gemini-2.5-flash",
        "gemini-2.5-pro": "gemini/gemini-2.5-pro",
    },
}


def to_litellm_model(model: Optional[str]) -> str:
    """Map a short alias (``gemini-2.5-flash``) to a LiteLLM model string; pass others through."""
    if not model:
        return DEFAULT_MODELS["gemini"]
    model_lower = model.lower()
    for aliases in MODEL_ALIASES.values():
        # Longest alias first (gpt-4o-mini before gpt-4o)
        for alias in sorted(aliases, key=len, reverse=True):
            if model_lower == alias:
                return aliases[alias]
    return model


def _usage(response: Any, key: str) -> int:
    usage = getattr(response, "usage", None)
    if usage is None:
        return 0
    value = getattr(usage, key, None)
    if value is None and isinstance(usage, dict):
        value = usage.get(key)
    return int(value or 0)


class LiteLLMProvider(LLMProvider):
    """Single provider that delegates to litellm.completion() / acompletion()."""

    def __init__(
        self,
        default_model: Optional[str] = None,
        timeout: float = 120,
        metadata: Optional[dict] = None,
    ):
        """Initialize with the LiteLLM model string to use by default.

        Args:
            default_model: LiteLLM model string (e.g. gemini/gemini-2.0-flash)
            timeout: Request timeout in seconds
            metadata: Optional dict passed through to litellm callbacks
        """
        self._default_model = to_litellm_model(default_model)
        self.timeout = timeout
        self._metadata = metadata or {}

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def _request(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str],
        max_tokens: int,
        json_mode: bool,
        response_schema: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": to_litellm_model(model) if model else self._default_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": max_tokens,
            "timeout": self.timeout,
            "metadata": {**self._metadata},
        }
        if json_mode or response_schema:
            kwargs["response_format"] = {"type": "json_object"}
        return kwargs

    def _to_response(self, response: Any, requested_model: str) -> LLMResponse:
        content = self._checked_content(response.choices[0].message.content)
        hidden = getattr(response, "_hidden_params", None) or {}
        return LLMResponse(
            content=content,
            input_tokens=_usage(response, "prompt_tokens"),
            output_tokens=_usage(response, "completion_tokens"),
            model=getattr(response, "model", None) or requested_model,
            provider=self.name,
            cost=float(hidden.get("response_cost", 0) or 0),
        )

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        response_schema: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        import litellm

        kwargs = self._request(system_prompt, user_message, model, max_tokens, json_mode, response_schema)
        try:
            response = litellm.completion(**kwargs)
        except Exception as e:
            raise to_provider_error(e, self.name) from e
        return self._to_response(response, kwargs["model"])

    async def acomplete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        response_schema: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        import litellm

        kwargs = self._request(system_prompt, user_message, model, max_tokens, json_mode, response_schema)
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            raise to_provider_error(e, self.name) from e
        return self._to_response(response, kwargs["model"])

    def is_available(self) -> bool:
        """LiteLLM reads API keys from env; we consider it available if the model is set."""
        return bool(self._default_model)
