"""Rule set contracts.

A RuleSet is a versioned, language-keyed bundle of instruction text. Section
rule blocks are a tagged union so that stored overrides are validated on load
instead of being duck-typed at use sites.
"""

from typing import Annotated, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from .generation import Language


class TextRuleBlock(BaseModel):
    """Free-form chapter rules."""
    kind: Literal["text"] = "text"
    text: str


class ListRuleBlock(BaseModel):
    """Enumerated strict rules for a section."""
    kind: Literal["list"] = "list"
    rules: List[str] = Field(default_factory=list)


RuleBlock = Annotated[Union[TextRuleBlock, ListRuleBlock], Field(discriminator="kind")]


def parse_version(version: str) -> Tuple[int, ...]:
    """'4.2' -> (4, 2). Raises ValueError on non-numeric parts."""
    return tuple(int(part) for part in version.strip().split("."))


class RuleSet(BaseModel):
    """Versioned rule bundle for one language.

    Every block is optional so that a stored override may carry only the
    blocks it changes; RuleRegistry fills the rest from the compiled default.
    """
    version: str = Field(..., description="Dotted numeric version, e.g. '4.2'")
    language: Language
    global_rules: Optional[str] = None
    section_rules: Optional[Dict[str, RuleBlock]] = Field(None, description="Chapter key -> rule block")
    field_rules: Optional[Dict[str, str]] = None
    mode_rules: Optional[Dict[str, str]] = Field(None, description="Mode value -> instruction")
    quality_gates: Optional[Dict[str, List[str]]] = Field(None, description="Gate key ('_default' fallback) -> checks")
    task_instructions: Optional[Dict[str, str]] = Field(None, description="Section key -> template with {{placeholders}}")
    language_directive: Optional[str] = None
    academic_rules: Optional[str] = None
    humanization_rules: Optional[str] = None
    title_rules: Optional[str] = None
    translation_rules: Optional[str] = None
    summary_rules: Optional[str] = None

    TEXT_BLOCKS: ClassVar[Tuple[str, ...]] = (
        "global_rules",
        "language_directive",
        "academic_rules",
        "humanization_rules",
        "title_rules",
        "translation_rules",
        "summary_rules",
    )
    MAPPING_BLOCKS: ClassVar[Tuple[str, ...]] = (
        "section_rules",
        "field_rules",
        "mode_rules",
        "quality_gates",
        "task_instructions",
    )

    @field_validator("version")
    @classmethod
    def _numeric_version(cls, value: str) -> str:
        parse_version(value)
        return value

    @property
    def version_tuple(self) -> Tuple[int, ...]:
        return parse_version(self.version)

    def missing_blocks(self) -> List[str]:
        """Names of blocks this rule set does not carry."""
        names = self.TEXT_BLOCKS + self.MAPPING_BLOCKS
        return [name for name in names if getattr(self, name) in (None, "")]

    def with_fallback(self, default: "RuleSet") -> "RuleSet":
        """Fill absent blocks from ``default``.

        Text blocks fall back whole. Mapping blocks fall back per key: keys
        the override carries win, the rest come from the default.
        """
        updates = {}
        for name in self.TEXT_BLOCKS:
            if not getattr(self, name):
                updates[name] = getattr(default, name)
        for name in self.MAPPING_BLOCKS:
            own = getattr(self, name)
            base = getattr(default, name) or {}
            updates[name] = {**base, **own} if own else dict(base)
        return self.model_copy(update=updates)
