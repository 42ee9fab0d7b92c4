"""Which sections, items and fields still need generated content."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from contracts.generation import GenerationMode


def has_deep_content(value: Any) -> bool:
    """True only if ``value`` holds some non-blank text somewhere inside it."""
    if not value:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list):
        return any(has_deep_content(item) for item in value)
    if isinstance(value, dict):
        return any(has_deep_content(item) for item in value.values())
    return False


def _has_blank_string(item: dict, skip: tuple = ()) -> bool:
    return any(
        isinstance(value, str) and not value.strip()
        for key, value in item.items()
        if key not in skip
    )


@dataclass
class NeedsGeneration:
    """Completeness verdict for one section.

    ``needed`` with no indices or fields means the whole section should be
    generated from scratch; ``empty_indices`` / ``empty_fields`` name the
    gaps in a partly authored section.
    """
    needed: bool
    empty_indices: List[int] = field(default_factory=list)
    empty_fields: List[str] = field(default_factory=list)

    @property
    def full_generation(self) -> bool:
        return self.needed and not self.empty_indices and not self.empty_fields

    @property
    def complete(self) -> bool:
        return not self.needed


def section_needs_generation(data: Any) -> NeedsGeneration:
    """Inspect a section value.

    List items count as empty when they hold no text at all, or when any
    string field other than ``id`` is blank.
    """
    if not data or not has_deep_content(data):
        return NeedsGeneration(needed=True)

    if isinstance(data, list):
        empty_indices = []
        for index, item in enumerate(data):
            if not has_deep_content(item):
                empty_indices.append(index)
            elif isinstance(item, dict) and _has_blank_string(item, skip=("id",)):
                empty_indices.append(index)
        return NeedsGeneration(needed=bool(empty_indices), empty_indices=empty_indices)

    if isinstance(data, dict):
        empty_fields = [
            name for name, value in data.items()
            if (isinstance(value, str) and not value.strip())
            or (isinstance(value, (list, dict)) and not has_deep_content(value))
        ]
        return NeedsGeneration(needed=bool(empty_fields), empty_fields=empty_fields)

    return NeedsGeneration(needed=False)


@dataclass
class FillAction:
    """What a smart "fill missing" pass will do for one section."""
    section_key: str
    mode: GenerationMode
    empty_indices: List[int] = field(default_factory=list)
    empty_fields: List[str] = field(default_factory=list)


def plan_fill(section_key: str, data: Any, mode: GenerationMode = GenerationMode.FILL) -> Optional[FillAction]:
    """Decide the action for ``section_key`` under ``mode``; None means skip.

    - fill: empty sections are generated from scratch, partial list sections
      get a targeted fill, partial object sections an object fill, complete
      sections are skipped.
    - enhance: only sections with content are enhanced.
    - regenerate: always regenerate.
    """
    mode = GenerationMode(mode)
    status = section_needs_generation(data)
    if mode is GenerationMode.REGENERATE:
        return FillAction(section_key, GenerationMode.REGENERATE)
    if mode is GenerationMode.ENHANCE:
        if status.full_generation:
            return None
        return FillAction(section_key, GenerationMode.ENHANCE)
    if status.complete:
        return None
    if status.full_generation:
        return FillAction(section_key, GenerationMode.REGENERATE)
    if status.empty_indices:
        return FillAction(section_key, GenerationMode.TARGETED_FILL, empty_indices=status.empty_indices)
    return FillAction(section_key, GenerationMode.FILL, empty_fields=status.empty_fields)
