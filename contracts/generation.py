"""Generation request/result contracts."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class Language(str, Enum):
    """Output languages with compiled-in rule sets."""
    EN = "en"
    SI = "si"

    @property
    def display_name(self) -> str:
        return "English" if self is Language.EN else "Slovenian"


class GenerationMode(str, Enum):
    """Merge semantics for a generation request.

    REGENERATE: brand-new section, no merge.
    FILL: existing non-empty content is authoritative; only gaps are generated.
    ENHANCE: existing content is deepened but never removed.
    TARGETED_FILL: only the designated list indices are regenerated.
    """
    REGENERATE = "regenerate"
    FILL = "fill"
    ENHANCE = "enhance"
    TARGETED_FILL = "targeted-fill"


class GenerationRequest(BaseModel):
    """A single ephemeral generation request; never persisted."""
    section_key: str = Field(..., description="Document section to generate, e.g. 'risks'")
    mode: GenerationMode = Field(default=GenerationMode.REGENERATE)
    language: Language = Field(default=Language.EN)
    current_data: Any = Field(default=None, description="Section data as it exists before generation")
    empty_indices: List[int] = Field(default_factory=list, description="Targeted-fill list positions")
    empty_fields: List[str] = Field(default_factory=list, description="Object-fill field names")


class GenerationOutcome(BaseModel):
    """What a session reports back to the UI layer for one request."""
    section_key: str
    mode: GenerationMode
    ok: bool
    value: Any = None
    error: Optional[str] = Field(None, description="Human-readable failure reason")
    error_type: Optional[str] = None
    attempts: int = 1
