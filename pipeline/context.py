"""Context Extractor.

Projects the document into the summary the generator sees. A section is only
exposed once it carries user-authored content: an empty section in the
context reads as a deliberate null rather than "not written yet". Derived
schedule fields are computed here so the generator never does date math.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional

from contracts.generation import Language
from schemas.sections import SectionKind

from .temporal import DEFAULT_DURATION_MONTHS, project_envelope

CONTEXT_HEADER = "Here is the current project information (Context):"
NO_CONTEXT = "No project data available yet."

_LIST_SECTIONS = (
    ("generalObjectives", "General Objectives"),
    ("specificObjectives", "Specific Objectives"),
    ("activities", "Activities (Work Packages)"),
    ("risks", "Risks"),
    ("outputs", "Outputs"),
    ("outcomes", "Outcomes"),
    ("impacts", "Impacts"),
    ("kers", "Key Exploitable Results"),
)

_IDEA_TEXT_FIELDS = ("mainAim", "stateOfTheArt", "proposedSolution", "projectTitle")

_SLOVENIAN_MARKERS = re.compile(
    r"[čšžČŠŽ]|\b(je|za|na|ki|ali|ter|pri|kot|ima|biti|ker|tudi|med|lahko|zelo|brez|kako|"
    r"vendar|zato|skupaj|potrebno|dejavnosti|razvoj|sodelovanje|vzpostaviti|okrepiti|"
    r"zagotoviti|vzroke|posledice)\b",
    re.IGNORECASE,
)
_ENGLISH_MARKERS = re.compile(
    r"\b(the|is|are|was|were|been|have|has|had|will|would|should|can|could|may|must|and|but|"
    r"or|which|that|this|these|those|with|from|into|about|between|through|during|before|after)\b",
    re.IGNORECASE,
)


def _filled(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def has_problem_content(problem: Optional[Dict[str, Any]]) -> bool:
    if not isinstance(problem, dict):
        return False
    core = problem.get("coreProblem") or {}
    return (
        _filled(core.get("title"))
        or _filled(core.get("description"))
        or bool(problem.get("causes"))
        or bool(problem.get("consequences"))
    )


def has_idea_content(idea: Optional[Dict[str, Any]]) -> bool:
    if not isinstance(idea, dict):
        return False
    return any(_filled(idea.get(name)) for name in _IDEA_TEXT_FIELDS)


def with_timeframe(
    idea: Dict[str, Any],
    default_duration: int = DEFAULT_DURATION_MONTHS,
) -> Dict[str, Any]:
    """Project idea plus ``_calculatedEndDate`` and ``_projectTimeframe``."""
    envelope = project_envelope({"projectIdea": idea}, default_duration)
    enriched = dict(idea)
    if envelope is None:
        enriched["_calculatedEndDate"] = ""
        enriched["_projectTimeframe"] = ""
        return enriched
    start, end, months = envelope
    enriched["_calculatedEndDate"] = end.isoformat()
    enriched["_projectTimeframe"] = (
        f"Project runs from {start.isoformat()} to {end.isoformat()} ({months} months). "
        "ALL tasks, milestones, and deliverables MUST fall within this timeframe. NO exceptions."
    )
    return enriched


def build_context(
    document: Optional[Dict[str, Any]],
    default_duration: int = DEFAULT_DURATION_MONTHS,
) -> str:
    """Render the authored parts of ``document`` as generator context.

    Args:
        document: Project document in wire (camelCase dict) form
        default_duration: Months assumed when the idea sets no duration

    Returns:
        Context block, or the "no data" sentence when nothing is authored
    """
    document = document or {}
    parts: List[str] = []

    problem = document.get("problemAnalysis")
    if has_problem_content(problem):
        parts.append(f"Problem Analysis:\n{_dump(problem)}")

    idea = document.get("projectIdea")
    if has_idea_content(idea):
        parts.append(f"Project Idea:\n{_dump(with_timeframe(idea, default_duration))}")

    management = document.get("projectManagement") or {}
    if isinstance(management, dict) and _filled(management.get("description")):
        parts.append(f"Project Management:\n{_dump(management)}")

    for key, label in _LIST_SECTIONS:
        items = document.get(key)
        if isinstance(items, list) and items:
            parts.append(f"{label}:\n{_dump(items)}")

    if not parts:
        return NO_CONTEXT
    return CONTEXT_HEADER + "\n" + "\n".join(parts)


def collect_texts(value: Any, depth: int = 0, min_length: int = 10) -> Iterable[str]:
    """Authored strings longer than ``min_length``, depth-first."""
    if depth > 5 or value is None:
        return
    if isinstance(value, str):
        if len(value.strip()) > min_length:
            yield value.strip()
    elif isinstance(value, list):
        for item in value:
            yield from collect_texts(item, depth + 1, min_length)
    elif isinstance(value, dict):
        for item in value.values():
            yield from collect_texts(item, depth + 1, min_length)


def detect_language(
    document: Optional[Dict[str, Any]],
    sample_size: int = 5,
    min_markers: int = 3,
) -> Optional[Language]:
    """Guess the language of the authored text from marker-word counts.

    One language must outnumber the other 1.5 to 1 with at least
    ``min_markers`` hits; otherwise None.
    """
    texts = []
    for text in collect_texts(document or {}):
        texts.append(text)
        if len(texts) >= sample_size:
            break
    if not texts:
        return None
    sample = " ".join(texts)
    slovenian = len(_SLOVENIAN_MARKERS.findall(sample))
    english = len(_ENGLISH_MARKERS.findall(sample))
    if slovenian >= min_markers and slovenian > english * 1.5:
        return Language.SI
    if english >= min_markers and english > slovenian * 1.5:
        return Language.EN
    return None


def section_value(document: Optional[Dict[str, Any]], section: SectionKind) -> Any:
    """Current value stored at the section's document path, or None."""
    node: Any = document or {}
    for step in section.path:
        if not isinstance(node, dict):
            return None
        node = node.get(step)
    return node
