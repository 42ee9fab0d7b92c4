"""Merge Engine: folds generated content back into user-owned data.

Fill and enhance merges are positional: list items are paired by index, not
by identity. Reordering or deleting items mid-session can therefore pair an
existing item with content generated for a different one.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from contracts.generation import GenerationMode

from .completeness import has_deep_content

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """None, or a string with no visible characters."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def smart_merge(original: Any, generated: Any) -> Any:
    """Recursive merge where non-blank original strings always win.

    Arrays are merged index by index up to the longer length; objects take
    the generated keys first and overlay every original key merged.
    """
    if original is None:
        return generated
    if generated is None:
        return original
    if isinstance(original, str):
        return original if original.strip() else generated
    if isinstance(original, list) and isinstance(generated, list):
        merged = []
        for index in range(max(len(original), len(generated))):
            if index < len(original):
                other = generated[index] if index < len(generated) else None
                merged.append(smart_merge(original[index], other))
            else:
                merged.append(generated[index])
        return merged
    if isinstance(original, dict) and isinstance(generated, dict):
        merged = dict(generated)
        for key, value in original.items():
            merged[key] = smart_merge(value, generated.get(key))
        return merged
    return original


def has_value(value: Any) -> bool:
    """A non-blank scalar, or a list/dict with some text inside it."""
    if isinstance(value, (list, dict)):
        return has_deep_content(value)
    if isinstance(value, (bool, int, float)):
        return True
    return not is_blank(value)


def _non_empty_fields(item: Any) -> Dict[str, Any]:
    if not isinstance(item, dict):
        return {}
    return {key: value for key, value in item.items() if has_value(value)}


def merge_targeted(
    original: Optional[List[Any]],
    generated: Union[List[Any], Dict[str, Any]],
    empty_indices: Iterable[int],
) -> List[Any]:
    """Replace only ``empty_indices`` of ``original`` with generated items.

    ``generated[i]`` fills ``empty_indices[i]``. Non-empty fields already
    present at a target index (a pre-assigned id, say) win over generated
    ones; empty lists and objects there are replaced. Every other index is
    returned untouched.
    """
    result = list(original or [])
    indices = list(empty_indices)
    if isinstance(generated, dict):
        generated = [generated]

    filled = 0
    for slot, target in enumerate(indices):
        if slot >= len(generated) or not 0 <= target < len(result):
            continue
        produced = generated[slot]
        if isinstance(produced, dict):
            result[target] = {**produced, **_non_empty_fields(result[target])}
        elif not has_value(result[target]):
            result[target] = produced
        filled += 1
    logger.info("Targeted fill: filled %d of %d item(s) at indices %s", filled, len(indices), indices)
    return result


def merge_object_fill(
    original: Optional[Dict[str, Any]],
    generated: Dict[str, Any],
    empty_fields: Iterable[str],
) -> Dict[str, Any]:
    """Overlay generated values onto the fields of ``original`` that are still empty."""
    merged = dict(original or {})
    for name in empty_fields:
        value = generated.get(name) if isinstance(generated, dict) else None
        if value is None:
            continue
        existing = merged.get(name)
        if not existing or is_blank(existing):
            merged[name] = value
    return merged


def merge(
    original: Any,
    generated: Any,
    mode: Union[str, GenerationMode],
    empty_indices: Optional[Iterable[int]] = None,
) -> Any:
    """Merge ``generated`` into ``original`` according to ``mode``.

    Args:
        original: Current section value (never mutated)
        generated: Processed provider output
        mode: regenerate, fill, enhance or targeted-fill
        empty_indices: Target indices for targeted-fill

    Returns:
        The new section value
    """
    mode = GenerationMode(mode)
    if mode is GenerationMode.REGENERATE:
        return generated
    original = copy.deepcopy(original)
    if mode is GenerationMode.TARGETED_FILL:
        return merge_targeted(original, generated, empty_indices or [])
    return smart_merge(original, generated)
