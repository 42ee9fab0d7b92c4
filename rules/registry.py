"""Rule Registry: resolves the effective rule set and renders rule blocks.

Resolution is pure: the compiled-in default for a language unless a stored
override with an equal or higher version exists, in which case the override
wins and any block it lacks falls back to the default.
"""

import logging
from typing import Dict, Optional, Union

from pydantic import ValidationError

from contracts.generation import GenerationMode, Language
from contracts.rules import RuleSet, TextRuleBlock
from schemas.sections import DEFAULT_GATE, SectionKind

from .defaults import DEFAULT_RULE_SETS, LANGUAGE_MISMATCH_TEMPLATE, TEMPORAL_RULES
from .legacy import adapt_override
from .store import OverrideStore

logger = logging.getLogger(__name__)

_HEADERS = {
    Language.EN: {
        "chapter": "DETAILED CHAPTER RULES",
        "strict": "STRICT RULES FOR THIS SECTION",
        "global": "GLOBAL RULES",
        "gate": "═══ QUALITY GATE — VERIFY BEFORE RETURNING YOUR RESPONSE ═══",
        "gate_footer": "If ANY check FAILS, REVISE your response before returning it.",
    },
    Language.SI: {
        "chapter": "PODROBNA PRAVILA ZA TO POGLAVJE",
        "strict": "STROGA PRAVILA ZA TA RAZDELEK",
        "global": "GLOBALNA PRAVILA",
        "gate": "═══ KONTROLA KAKOVOSTI — PREVERI PRED ODDAJO ODGOVORA ═══",
        "gate_footer": "Če katerakoli točka NI izpolnjena, POPRAVI odgovor preden ga vrneš.",
    },
}


def resolve_rules(language: Language, override: Optional[RuleSet] = None) -> RuleSet:
    """Effective rule set for ``language``.

    Args:
        language: Output language
        override: Custom rule set from the override store, if any

    Returns:
        The override (with per-block fallback) when its version is at least
        the compiled-in version, otherwise the compiled-in default.
    """
    default = DEFAULT_RULE_SETS[Language(language)]
    if override is None:
        return default
    if override.version_tuple < default.version_tuple:
        logger.warning(
            "Ignoring rule override v%s: older than built-in v%s",
            override.version,
            default.version,
        )
        return default
    resolved = override.with_fallback(default)
    return resolved.model_copy(update={"language": default.language})


def load_override(store: Optional[OverrideStore], language: Language) -> Optional[RuleSet]:
    """Read and validate the stored override; a broken blob is logged and ignored."""
    if store is None:
        return None
    try:
        return adapt_override(store.load(), Language(language))
    except (ValidationError, ValueError) as e:
        logger.warning("Rule override is invalid, using built-in rules: %s", e)
        return None


class RuleRegistry:
    """Accessors over one resolved rule set."""

    def __init__(self, rules: RuleSet):
        self.rules = rules
        self.language = Language(rules.language)
        self._headers = _HEADERS[self.language]

    @classmethod
    def for_language(
        cls,
        language: Union[str, Language],
        store: Optional[OverrideStore] = None,
    ) -> "RuleRegistry":
        """Resolve rules for ``language`` reading ``store`` once."""
        language = Language(language)
        return cls(resolve_rules(language, load_override(store, language)))

    @property
    def version(self) -> str:
        return self.rules.version

    def get_global_rules(self) -> str:
        text = self.rules.global_rules or ""
        return f"{self._headers['global']}:\n{text}" if text.strip() else ""

    def get_section_rules(self, section: Union[str, SectionKind]) -> str:
        """Rule block for the section's chapter, rendered by block kind."""
        chapter = SectionKind.from_key(section).chapter
        block = (self.rules.section_rules or {}).get(chapter)
        if block is None:
            return ""
        if isinstance(block, TextRuleBlock):
            if not block.text.strip():
                return ""
            return f"{self._headers['chapter']}:\n{block.text}"
        if not block.rules:
            return ""
        return f"{self._headers['strict']}:\n- " + "\n- ".join(block.rules)

    def get_field_rule(self, field_name: str) -> str:
        return (self.rules.field_rules or {}).get(field_name, "")

    def get_mode_instruction(self, mode: Union[str, GenerationMode]) -> str:
        modes = self.rules.mode_rules or {}
        key = GenerationMode(mode).value
        return modes.get(key) or modes.get(GenerationMode.REGENERATE.value, "")

    def get_quality_gate(self, section: Union[str, SectionKind]) -> str:
        gates = self.rules.quality_gates or {}
        gate_key = SectionKind.from_key(section).binding.gate
        checks = gates.get(gate_key) or gates.get(DEFAULT_GATE) or []
        if not checks:
            return ""
        lines = [self._headers["gate"]]
        lines.extend(f"☐ {i}. {check}" for i, check in enumerate(checks, start=1))
        lines.append(self._headers["gate_footer"])
        return "\n".join(lines)

    def get_task_instruction(
        self,
        section: Union[str, SectionKind],
        placeholders: Optional[Dict[str, str]] = None,
    ) -> str:
        """Task template for the section with ``{{name}}`` placeholders filled."""
        kind = SectionKind.from_key(section)
        template = (self.rules.task_instructions or {}).get(kind.task_key, "")
        for name, value in (placeholders or {}).items():
            template = template.replace("{{" + name + "}}", value)
        return template

    def get_temporal_rule(self, placeholders: Dict[str, str]) -> str:
        """Date-envelope restatement with projectStart, projectEnd and projectDurationMonths filled."""
        template = TEMPORAL_RULES[self.language]
        for name, value in placeholders.items():
            template = template.replace("{{" + name + "}}", value)
        return template

    def get_language_directive(self) -> str:
        return self.rules.language_directive or ""

    def get_language_mismatch_notice(self, detected: Union[str, Language]) -> str:
        detected = Language(detected)
        if detected is self.language:
            return ""
        return LANGUAGE_MISMATCH_TEMPLATE.format(
            detected=detected.display_name,
            target=self.language.display_name,
        )

    def get_academic_rules(self) -> str:
        return self.rules.academic_rules or ""

    def get_humanization_rules(self) -> str:
        return self.rules.humanization_rules or ""

    def get_title_rules(self) -> str:
        return self.rules.title_rules or ""

    def get_translation_rules(self) -> str:
        return self.rules.translation_rules or ""

    def get_summary_rules(self) -> str:
        return self.rules.summary_rules or ""
