"""Factory for creating LLM providers."""

from typing import Dict, Optional, Type

from config import settings

from .anthropic_provider import AnthropicProvider
from .base import LLMProvider
from .gemini_provider import GeminiProvider
from .litellm_provider import LiteLLMProvider
from .openai_provider import OpenAIProvider, OpenRouterProvider


# Registry of available providers
PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "litellm": LiteLLMProvider,
    "gemini": GeminiProvider,
    "google": GeminiProvider,
    "openai": OpenAIProvider,
    "gpt": OpenAIProvider,
    "openrouter": OpenRouterProvider,
    "anthropic": AnthropicProvider,
    "claude": AnthropicProvider,
}

_ALIASES = ("google", "gpt", "claude")

# Model prefix to provider mapping for auto-detection
MODEL_PROVIDERS: Dict[str, str] = {
    "gemini": "gemini",
    "gpt": "openai",
    "o1": "openai",
    "claude": "anthropic",
    "sonnet": "anthropic",
    "haiku": "anthropic",
}


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> LLMProvider:
    """Get an LLM provider instance.

    Args:
        provider_name: Explicit provider name (litellm, gemini, openai, openrouter, anthropic)
        model: Model name; detects the provider when no name is given

    Returns:
        LLMProvider instance

    Examples:
        get_provider("gemini")
        get_provider(model="gpt-4o")     # OpenAI provider
        get_provider()                   # settings.provider (litellm by default)
    """
    if provider_name:
        provider_key = provider_name.lower()
        if provider_key not in PROVIDERS:
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available: {list(PROVIDERS.keys())}"
            )
        if PROVIDERS[provider_key] is LiteLLMProvider:
            return LiteLLMProvider(
                default_model=model or settings.model,
                timeout=settings.api_timeout_seconds,
            )
        return PROVIDERS[provider_key]()

    if model:
        model_lower = model.lower()
        for prefix, provider in MODEL_PROVIDERS.items():
            if model_lower.startswith(prefix):
                return PROVIDERS[provider]()

    return get_provider(settings.provider or "litellm", model)


def list_providers() -> Dict[str, bool]:
    """List all providers and their availability.

    Returns:
        Dict mapping provider name to availability status
    """
    result = {}
    for name, provider_class in PROVIDERS.items():
        if name in _ALIASES:
            continue
        result[name] = provider_class().is_available()
    return result
