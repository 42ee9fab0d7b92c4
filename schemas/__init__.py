"""Output shape declarations for every generatable section."""

from .shape import (
    Shape,
    contract_schema,
    json_kind,
    many,
    one,
    to_json_schema,
    to_text_hint,
)
from .sections import (
    FIELD_MAX_TOKENS,
    SUMMARY_MAX_TOKENS,
    TRANSLATION_MAX_TOKENS,
    WORK_PACKAGE,
    WORK_PACKAGE_SCAFFOLD,
    SECTION_BINDINGS,
    SectionBinding,
    SectionKind,
)

__all__ = [
    "Shape",
    "contract_schema",
    "json_kind",
    "many",
    "one",
    "to_json_schema",
    "to_text_hint",
    "FIELD_MAX_TOKENS",
    "SUMMARY_MAX_TOKENS",
    "TRANSLATION_MAX_TOKENS",
    "WORK_PACKAGE",
    "WORK_PACKAGE_SCAFFOLD",
    "SECTION_BINDINGS",
    "SectionBinding",
    "SectionKind",
]
