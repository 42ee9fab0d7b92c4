"""Post-parse sanitizer stage.

One place for all text clean-up applied to generated content: inline
formatting markers are stripped from every string leaf (the presentation
layer owns formatting), then a small table of field-specific normalizers runs
over the fields that need them.
"""

import re
from typing import Any, Callable, Dict, Iterable, Optional

_BOLD_STARS = re.compile(r"\*\*([^*]+)\*\*")
_BOLD_UNDERSCORES = re.compile(r"__([^_]+)__")
_HEADING = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_BACKTICKS = re.compile(r"`([^`]+)`")

_WRAPPING_QUOTES = re.compile(r"^[\"'«»„“”‘’]+|[\"'«»„“”‘’]+$")
_TITLE_LABEL = re.compile(r"^(Project\s*Title|Naziv\s*projekta)\s*[:–—-]\s*", re.IGNORECASE)
# An ASCII hyphen only counts after whitespace; "EU-wide" is a word, not a label
_ACRONYM_PREFIX = re.compile(r"^[A-ZČŠŽ]{2,10}(?:\s+[-–—]|\s*[–—:])\s*")
_PHASE_HEADER = re.compile(r"([^\n])\s*((?:Phase|Faza)\s+\d+[:.])")

MAX_TITLE_LENGTH = 200
MIN_TITLE_AFTER_ACRONYM = 20


def strip_markdown_text(text: str) -> str:
    text = _BOLD_STARS.sub(r"\1", text)
    text = _BOLD_UNDERSCORES.sub(r"\1", text)
    text = _HEADING.sub("", text)
    return _BACKTICKS.sub(r"\1", text)


def strip_markdown(value: Any) -> Any:
    """Recursively strip bold, heading and backtick markers from every string leaf."""
    if isinstance(value, str):
        return strip_markdown_text(value)
    if isinstance(value, list):
        return [strip_markdown(item) for item in value]
    if isinstance(value, dict):
        return {key: strip_markdown(item) for key, item in value.items()}
    return value


def sanitize_project_title(title: Any) -> Any:
    """Normalize a generated project title.

    Trims, strips formatting, wrapping quotes and an accidental "Project Title:"
    label, drops a leading "ACRONYM –" prefix when enough title remains, and
    caps the length at a word boundary.
    """
    if not isinstance(title, str) or not title:
        return title
    clean = strip_markdown_text(title.strip())
    clean = _WRAPPING_QUOTES.sub("", clean).strip()
    clean = _TITLE_LABEL.sub("", clean).strip()

    if _ACRONYM_PREFIX.match(clean):
        without_acronym = _ACRONYM_PREFIX.sub("", clean, count=1).strip()
        if len(without_acronym) > MIN_TITLE_AFTER_ACRONYM:
            clean = without_acronym

    if len(clean) > MAX_TITLE_LENGTH:
        clean = re.sub(r"\s+\S*$", "", clean[:MAX_TITLE_LENGTH]).strip()
    return clean


def normalize_acronym(acronym: Any) -> Any:
    if not isinstance(acronym, str):
        return acronym
    return re.sub(r"[\s.]+", "", strip_markdown_text(acronym)).upper()


def break_solution_phases(text: Any) -> Any:
    """Put every "Phase N:" / "Faza N:" header at the start of its own paragraph."""
    if not isinstance(text, str) or not text:
        return text
    return _PHASE_HEADER.sub(r"\1\n\n\2", text)


Normalizer = Callable[[Any], Any]

FIELD_NORMALIZERS: Dict[str, Normalizer] = {
    "projectTitle": sanitize_project_title,
    "projectAcronym": normalize_acronym,
    "proposedSolution": break_solution_phases,
}


def normalize_fields(value: Any, normalizers: Optional[Dict[str, Normalizer]] = None) -> Any:
    """Apply field normalizers wherever their field name occurs in ``value``."""
    normalizers = FIELD_NORMALIZERS if normalizers is None else normalizers
    if isinstance(value, list):
        return [normalize_fields(item, normalizers) for item in value]
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            item = normalize_fields(item, normalizers)
            if key in normalizers:
                item = normalizers[key](item)
            cleaned[key] = item
        return cleaned
    return value


def sanitize(value: Any, normalizers: Optional[Dict[str, Normalizer]] = None) -> Any:
    """Full sanitizer stage: markdown stripping, then field normalizers."""
    return normalize_fields(strip_markdown(value), normalizers)


def next_identifier(prefix: str, existing: Iterable[Any]) -> str:
    """Next free identifier after the highest ``<prefix><n>`` in use.

    Gaps left by deleted items are never reused, so references to a deleted
    identifier cannot silently point at a new item.

    >>> next_identifier("RISK", ["RISK1", "RISK4"])
    'RISK5'
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for identifier in existing:
        match = pattern.match(str(identifier or ""))
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1}"
