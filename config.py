"""Configuration settings for Grant Forge."""

# Load .env into os.environ so vendor key fallbacks (e.g. GOOGLE_API_KEY) work
from dotenv import load_dotenv

load_dotenv()

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global settings for Grant Forge.

    Settings can be overridden via environment variables with GRANT_FORGE_ prefix.
    Example: GRANT_FORGE_PROVIDER=gemini
    """

    # Model config
    provider: str = Field(
        default="litellm",
        description="Model provider (litellm, gemini, openai, openrouter, anthropic)",
    )
    model: str = Field(
        default="gemini/gemini-2.0-flash",
        description="Default model for generation calls",
    )
    api_timeout_seconds: int = Field(
        default=120,
        description="Provider call timeout in seconds",
    )

    # API settings (env: GRANT_FORGE_<KEY> or the vendor's standard env var)
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key (env: GRANT_FORGE_ANTHROPIC_API_KEY)",
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (env: GRANT_FORGE_OPENAI_API_KEY)",
    )
    google_api_key: str = Field(
        default="",
        description="Google/Gemini API key (env: GRANT_FORGE_GOOGLE_API_KEY)",
    )
    openrouter_api_key: str = Field(
        default="",
        description="OpenRouter API key (env: GRANT_FORGE_OPENROUTER_API_KEY)",
    )

    # Document defaults
    default_language: str = Field(
        default="en",
        description="Output language when none is given (en or si)",
    )
    default_duration_months: int = Field(
        default=24,
        ge=1,
        description="Project duration assumed when the document does not set one",
    )

    # Rule overrides
    rules_override_path: str = Field(
        default="./rules_override.json",
        description="Global custom rule set (JSON)",
    )
    org_rules_override_path: Optional[str] = Field(
        default=None,
        description="Organisation rule set layered over the global override",
    )
    rules_cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="How long a loaded override stays cached",
    )

    # Paths
    documents_dir: str = Field(
        default="./documents",
        description="Project document storage directory",
    )

    # Caller retry policy for composite generation
    rate_limit_retries: int = Field(
        default=3,
        ge=0,
        description="Retries on provider rate limiting in composite flows",
    )
    rate_limit_backoff_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Base backoff between rate-limit retries (multiplied by attempt)",
    )

    model_config = {
        "env_prefix": "GRANT_FORGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore extra env vars (e.g. OPENAI_API_KEY) not in schema
    }

    def get_documents_path(self) -> Path:
        """Get documents path as Path object."""
        return Path(self.documents_dir)

    def get_rules_override_path(self) -> Path:
        """Get global rules override path as Path object."""
        return Path(self.rules_override_path)


# Create singleton instance
settings = Settings()
