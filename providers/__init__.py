"""LLM Provider abstraction for multi-model support."""

from .base import LLMProvider, LLMResponse, to_provider_error
from .factory import get_provider, list_providers

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "to_provider_error",
    "get_provider",
    "list_providers",
]
