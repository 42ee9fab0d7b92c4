"""Error taxonomy for the proposal generation pipeline.

Parse and shape errors surface to the caller unmodified; the core never
retries them. Provider failures are wrapped into ProviderError so callers
only deal with one exception type per failure class.
"""

from typing import Optional


class ProposalPipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class UnknownSectionError(ProposalPipelineError):
    """A section key has no registered schema (programmer error)."""

    def __init__(self, section_key: str):
        self.section_key = section_key
        super().__init__(f"Unknown section key: {section_key}")


class MalformedResponseError(ProposalPipelineError):
    """The provider returned a payload that is not parseable JSON."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class ShapeMismatchError(ProposalPipelineError):
    """The parsed payload's top-level kind contradicts the declared schema."""

    def __init__(self, expected: str, actual: str, section_key: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.section_key = section_key
        where = f" for section '{section_key}'" if section_key else ""
        super().__init__(f"Expected a JSON {expected}{where}, got {actual}")


class ProviderError(ProposalPipelineError):
    """Network, credential, quota or protocol failure from a model provider.

    Attributes:
        kind: One of rate_limit, invalid_credential, insufficient_credits,
            network, malformed_response, unknown
        provider: Provider name that raised
        status_code: HTTP status when the vendor reported one
    """

    RATE_LIMIT = "rate_limit"
    INVALID_CREDENTIAL = "invalid_credential"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"

    def __init__(
        self,
        message: str,
        kind: str = UNKNOWN,
        provider: str = "",
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_rate_limit(self) -> bool:
        return self.kind == self.RATE_LIMIT


class InvariantViolation(ProposalPipelineError):
    """A domain invariant was found broken after repair passes ran."""


_KIND_MESSAGES = {
    ProviderError.RATE_LIMIT: "The model provider is rate limiting requests. Wait a moment and try again.",
    ProviderError.INVALID_CREDENTIAL: "The API key for the model provider is missing or invalid.",
    ProviderError.INSUFFICIENT_CREDITS: "The model provider account has run out of credits.",
    ProviderError.NETWORK: "Could not reach the model provider (network error or timeout).",
    ProviderError.MALFORMED_RESPONSE: "The model provider returned an unusable response.",
}


def describe_error(error: BaseException) -> str:
    """Human-readable failure reason for display to the user."""
    if isinstance(error, ProviderError):
        base = _KIND_MESSAGES.get(error.kind, "The model provider call failed.")
        return f"{base} ({error})" if str(error) else base
    if isinstance(error, MalformedResponseError):
        return f"The generated content could not be read as JSON: {error}"
    if isinstance(error, ShapeMismatchError):
        return f"The generated content had the wrong structure: {error}"
    if isinstance(error, UnknownSectionError):
        return str(error)
    return f"Generation failed: {error}"
