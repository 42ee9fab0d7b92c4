"""Google Gemini provider implementation (native response schema)."""

import os
from typing import Any, Dict, Optional

from config import settings

from .base import LLMProvider, LLMResponse, to_provider_error


class GeminiProvider(LLMProvider):
    """Provider for Google Gemini models.

    Gemini enforces a JSON response schema itself, so callers pass the
    declared shape instead of embedding it in the instruction.
    """

    MODELS = {
        "gemini-flash": "gemini-2.0-flash",
        "gemini-2.0-flash": "gemini-2.0-flash",
        "gemini-2.5-flash": "gemini-2.5-flash",
        "gemini-2.5-pro": "gemini-2.5-pro",
        "gemini-pro": "gemini-2.5-pro",
    }

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize Gemini provider.

        Args:
            api_key: Google API key. Uses settings, then GOOGLE_API_KEY or GEMINI_API_KEY.
            timeout: Request timeout in seconds (settings.api_timeout_seconds by default)
        """
        self.api_key = (
            api_key
            or settings.google_api_key
            or os.environ.get("GOOGLE_API_KEY")
            or os.environ.get("GEMINI_API_KEY")
        )
        self.timeout = timeout or settings.api_timeout_seconds
        self._configured = False

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-2.0-flash"

    @property
    def supports_native_schema(self) -> bool:
        return True

    def _configure(self):
        if not self._configured and self.api_key:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._configured = True

    def _resolve_model(self, model: Optional[str]) -> str:
        if model is None:
            return self.default_model
        model = model.split("/", 1)[1] if model.startswith("gemini/") else model
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
        import google.generativeai as genai

        self._configure()
        resolved_model = self._resolve_model(model)

        config: Dict[str, Any] = {"max_output_tokens": max_tokens}
        if response_schema or json_mode:
            config["response_mime_type"] = "application/json"
        if response_schema:
            config["response_schema"] = response_schema

        try:
            gen_model = genai.GenerativeModel(
                model_name=resolved_model,
                system_instruction=system_prompt,
            )
            response = gen_model.generate_content(
                user_message,
                generation_config=genai.types.GenerationConfig(**config),
                request_options={"timeout": self.timeout},
            )
            text = response.text
        except Exception as e:
            raise to_provider_error(e, self.name) from e

        content = self._checked_content(text)
        usage = getattr(response, "usage_metadata", None)
        # Estimate when usage metadata is missing
        input_tokens = getattr(usage, "prompt_token_count", None) or len(system_prompt + user_message) // 4
        output_tokens = getattr(usage, "candidates_token_count", None) or len(content) // 4

        return LLMResponse(
            content=content.strip(),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=resolved_model,
            provider=self.name,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)
