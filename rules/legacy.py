"""Adapter from stored override blobs to RuleSet.

Three blob shapes are accepted:

1. Native: the RuleSet field names (``global_rules``, ``section_rules`` ...).
2. Per-language: ``{"en": {...}, "si": {...}}`` where each value is native or legacy.
3. Legacy flat: ``{"version", "GLOBAL_RULES", "CHAPTERS", "FIELD_RULES",
   "TRANSLATION_RULES", "SUMMARY_RULES"}``. A CHAPTERS entry is either a
   string or ``{"RULES": [...]}``.

A legacy blob without GLOBAL_RULES was never a usable override and is treated
as absent.
"""

import logging
from typing import Any, Dict, Optional

from contracts.generation import Language
from contracts.rules import ListRuleBlock, RuleSet, TextRuleBlock

from .defaults import DEFAULT_RULES_VERSION

logger = logging.getLogger(__name__)

LEGACY_KEYS = ("GLOBAL_RULES", "CHAPTERS", "FIELD_RULES", "TRANSLATION_RULES", "SUMMARY_RULES")


def is_legacy_blob(blob: Dict[str, Any]) -> bool:
    return any(key in blob for key in LEGACY_KEYS)


def _legacy_chapter(chapter: str, content: Any):
    if isinstance(content, str):
        return TextRuleBlock(text=content) if content.strip() else None
    if isinstance(content, dict):
        rules = content.get("RULES")
        if isinstance(rules, list) and rules:
            return ListRuleBlock(rules=[str(rule) for rule in rules])
        if isinstance(content.get("kind"), str):
            return content  # already a tagged block; validated by RuleSet
    if isinstance(content, list) and content:
        return ListRuleBlock(rules=[str(rule) for rule in content])
    logger.warning("Ignoring chapter %s with unsupported rule shape %s", chapter, type(content).__name__)
    return None


def _from_legacy(blob: Dict[str, Any], language: Language) -> Optional[RuleSet]:
    global_rules = blob.get("GLOBAL_RULES")
    if not isinstance(global_rules, str) or not global_rules.strip():
        logger.info("Legacy rule override has no GLOBAL_RULES; using defaults")
        return None

    chapters = {}
    for chapter, content in (blob.get("CHAPTERS") or {}).items():
        block = _legacy_chapter(chapter, content)
        if block is not None:
            chapters[chapter] = block

    field_rules = {
        name: text
        for name, text in (blob.get("FIELD_RULES") or {}).items()
        if isinstance(text, str) and text.strip()
    }

    return RuleSet.model_validate({
        "version": str(blob.get("version") or DEFAULT_RULES_VERSION),
        "language": language,
        "global_rules": global_rules,
        "section_rules": chapters or None,
        "field_rules": field_rules or None,
        "translation_rules": blob.get("TRANSLATION_RULES") or None,
        "summary_rules": blob.get("SUMMARY_RULES") or None,
    })


def adapt_override(blob: Optional[Dict[str, Any]], language: Language) -> Optional[RuleSet]:
    """Validate a stored override blob into a RuleSet for ``language``.

    Args:
        blob: Raw JSON object from the override store (None when absent)
        language: Language to resolve

    Returns:
        RuleSet, or None when the blob carries nothing for this language

    Raises:
        pydantic.ValidationError: If the blob is present but malformed
    """
    if not blob:
        return None

    per_language = blob.get(language.value)
    if isinstance(per_language, dict):
        blob = per_language
    elif any(lang.value in blob for lang in Language):
        return None

    if is_legacy_blob(blob):
        return _from_legacy(blob, language)

    data = dict(blob)
    data.setdefault("language", language)
    if "version" in data:
        data["version"] = str(data["version"])
    return RuleSet.model_validate(data)


def to_legacy_blob(rule_set: RuleSet) -> Dict[str, Any]:
    """Export a RuleSet in the legacy flat shape (admin export)."""
    chapters: Dict[str, Any] = {}
    for chapter, block in (rule_set.section_rules or {}).items():
        if isinstance(block, TextRuleBlock):
            chapters[chapter] = block.text
        else:
            chapters[chapter] = {"RULES": list(block.rules)}
    return {
        "version": rule_set.version,
        "GLOBAL_RULES": rule_set.global_rules or "",
        "CHAPTERS": chapters,
        "FIELD_RULES": dict(rule_set.field_rules or {}),
        "TRANSLATION_RULES": rule_set.translation_rules or "",
        "SUMMARY_RULES": rule_set.summary_rules or "",
    }
