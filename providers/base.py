"""Base LLM provider interface."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from exceptions import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider."""
    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    cost: float = 0.0


_STATUS_KINDS = {
    401: ProviderError.INVALID_CREDENTIAL,
    403: ProviderError.INVALID_CREDENTIAL,
    402: ProviderError.INSUFFICIENT_CREDITS,
    429: ProviderError.RATE_LIMIT,
}

_RATE_LIMIT_MARKERS = ("rate limit", "quota", "resource_exhausted", "resource exhausted")
_NETWORK_MARKERS = ("timeout", "timed out", "connection", "connect")


def _status_code(exc: BaseException) -> Optional[int]:
    for attribute in ("status_code", "code", "status"):
        value = getattr(exc, attribute, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def to_provider_error(exc: BaseException, provider: str) -> ProviderError:
    """Map a vendor SDK exception onto ProviderError.

    The HTTP status decides when the SDK reports one; otherwise the exception
    type and message are inspected.
    """
    if isinstance(exc, ProviderError):
        return exc
    status = _status_code(exc)
    text = f"{type(exc).__name__}: {exc}"
    lowered = text.lower()

    if status in _STATUS_KINDS:
        kind = _STATUS_KINDS[status]
    elif any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        kind = ProviderError.RATE_LIMIT
    elif isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError)) or any(
        marker in type(exc).__name__.lower() for marker in _NETWORK_MARKERS
    ):
        kind = ProviderError.NETWORK
    elif "credit" in lowered or "afford" in lowered:
        kind = ProviderError.INSUFFICIENT_CREDITS
    else:
        kind = ProviderError.UNKNOWN
    return ProviderError(text, kind=kind, provider=provider, status_code=status)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (litellm, gemini, openai, openrouter, anthropic)."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Default model for this provider."""
        pass

    @property
    def supports_native_schema(self) -> bool:
        """True when the vendor enforces a response schema itself."""
        return False

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        response_schema: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion.

        Args:
            system_prompt: System/instruction prompt
            user_message: User message/query
            model: Model to use (defaults to provider's default)
            max_tokens: Maximum tokens in response
            response_schema: Native structured-output schema (only when
                ``supports_native_schema``)
            json_mode: Ask the vendor for a JSON object response

        Returns:
            LLMResponse with content and token counts

        Raises:
            ProviderError: For any vendor, network or credential failure
        """
        pass

    async def acomplete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        response_schema: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Async completion; runs the blocking SDK call in a worker thread by default."""
        return await asyncio.to_thread(
            self.complete,
            system_prompt,
            user_message,
            model,
            max_tokens,
            response_schema,
            json_mode,
        )

    def _checked_content(self, content: Optional[str]) -> str:
        if not content or not content.strip():
            raise ProviderError(
                "Provider returned an empty response",
                kind=ProviderError.MALFORMED_RESPONSE,
                provider=self.name,
            )
        return content

    def is_available(self) -> bool:
        """Check if this provider is available (API key set, etc.)."""
        return True
