"""Rule Registry: versioned, language-keyed generation rules with overrides."""

from .defaults import DEFAULT_RULES_VERSION, DEFAULT_RULE_SETS, build_default_rule_set
from .legacy import adapt_override, to_legacy_blob
from .registry import RuleRegistry, load_override, resolve_rules
from .store import (
    CachedOverrideStore,
    InMemoryOverrideStore,
    JsonFileOverrideStore,
    LayeredOverrideStore,
    OverrideStore,
    build_override_store,
)

__all__ = [
    "DEFAULT_RULES_VERSION",
    "DEFAULT_RULE_SETS",
    "build_default_rule_set",
    "adapt_override",
    "to_legacy_blob",
    "RuleRegistry",
    "load_override",
    "resolve_rules",
    "CachedOverrideStore",
    "InMemoryOverrideStore",
    "JsonFileOverrideStore",
    "LayeredOverrideStore",
    "OverrideStore",
    "build_override_store",
]
