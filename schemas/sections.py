"""Section kinds and their static bindings.

Every generatable section is a member of SectionKind. Each member is bound to
exactly one output shape (a view of a document contract model), one rule chapter, one quality gate and one output
token budget, so an unmapped section cannot reach the prompt compiler.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from contracts.document import (
    KeyExploitableResult,
    Objective,
    Policy,
    ProblemAnalysis,
    ProjectIdea,
    ProjectManagement,
    ReadinessLevels,
    ResultItem,
    Risk,
    TitledItem,
    WorkPackage,
)
from exceptions import UnknownSectionError

from .shape import Shape, many, one

# Rule chapters in the rule registry
CHAPTER_PROBLEM = "chapter1_problemAnalysis"
CHAPTER_IDEA = "chapter2_projectIdea"
CHAPTER_OBJECTIVES = "chapter3_4_objectives"
CHAPTER_ACTIVITIES = "chapter5_activities"
CHAPTER_RESULTS = "chapter6_results"

DEFAULT_GATE = "_default"

FIELD_MAX_TOKENS = 2048
TRANSLATION_MAX_TOKENS = 8192
SUMMARY_MAX_TOKENS = 4096


# ─── Shapes ──────────────────────────────────────────────────────

PROBLEM_NODE = one(TitledItem)

PROBLEM_ANALYSIS = one(ProblemAnalysis)

# Start date and duration are user input, never generated
PROJECT_IDEA = one(
    ProjectIdea,
    "projectTitle",
    "projectAcronym",
    "mainAim",
    "stateOfTheArt",
    "proposedSolution",
    "policies",
    "readinessLevels",
)

OBJECTIVES = many(Objective)

PROJECT_MANAGEMENT = one(ProjectManagement)

WORK_PACKAGE = one(WorkPackage)

ACTIVITIES = many(WorkPackage)

# Work-package skeleton used by the per-WP activities flow
WORK_PACKAGE_SCAFFOLD = many(WorkPackage, "id", "title")

RESULTS = many(ResultItem)

RISKS = many(Risk)

KERS = many(KeyExploitableResult)


# ─── Bindings ────────────────────────────────────────────────────


@dataclass(frozen=True)
class SectionBinding:
    """Static binding of a section kind.

    Attributes:
        shape: Declared output shape
        chapter: Rule chapter for section rules
        gate: Quality gate key
        max_tokens: Output token budget for one generation call
        path: Location of the section value in the document
        task_key: Task instruction template key
        partial: Value is a subset of the object at ``path`` (overlaid, not replaced)
        components: Sections a composite kind fans out to
    """
    shape: Shape
    chapter: str
    gate: str = DEFAULT_GATE
    max_tokens: int = 4096
    path: Tuple[str, ...] = ()
    task_key: Optional[str] = None
    partial: bool = False
    components: Tuple[str, ...] = ()


class SectionKind(str, Enum):
    """Every generatable section of the proposal document."""

    PROBLEM_ANALYSIS = "problemAnalysis"
    PROJECT_IDEA = "projectIdea"
    GENERAL_OBJECTIVES = "generalObjectives"
    SPECIFIC_OBJECTIVES = "specificObjectives"
    PROJECT_MANAGEMENT = "projectManagement"
    ACTIVITIES = "activities"
    RISKS = "risks"
    OUTPUTS = "outputs"
    OUTCOMES = "outcomes"
    IMPACTS = "impacts"
    KERS = "kers"
    EXPECTED_RESULTS = "expectedResults"

    # Sub-sections generated on their own
    CORE_PROBLEM = "coreProblem"
    CAUSES = "causes"
    CONSEQUENCES = "consequences"
    PROJECT_TITLE_ACRONYM = "projectTitleAcronym"
    MAIN_AIM = "mainAim"
    STATE_OF_THE_ART = "stateOfTheArt"
    PROPOSED_SOLUTION = "proposedSolution"
    READINESS_LEVELS = "readinessLevels"
    POLICIES = "policies"

    @classmethod
    def from_key(cls, key: Union[str, "SectionKind"]) -> "SectionKind":
        """Resolve a section key, raising UnknownSectionError for unregistered keys."""
        if isinstance(key, SectionKind):
            return key
        try:
            return cls(key)
        except ValueError:
            raise UnknownSectionError(str(key)) from None

    @property
    def key(self) -> str:
        return self.value

    @property
    def binding(self) -> SectionBinding:
        return SECTION_BINDINGS[self]

    @property
    def shape(self) -> Shape:
        return self.binding.shape

    @property
    def chapter(self) -> str:
        return self.binding.chapter

    @property
    def max_tokens(self) -> int:
        return self.binding.max_tokens

    @property
    def path(self) -> Tuple[str, ...]:
        return self.binding.path or (self.value,)

    @property
    def task_key(self) -> str:
        return self.binding.task_key or self.value

    @property
    def is_list(self) -> bool:
        return self.shape.many

    @property
    def is_composite(self) -> bool:
        return bool(self.binding.components)

    @property
    def components(self) -> Tuple["SectionKind", ...]:
        return tuple(SectionKind(key) for key in self.binding.components)


def _idea_part(*fields: str) -> SectionBinding:
    return SectionBinding(
        shape=one(ProjectIdea, *fields),
        chapter=CHAPTER_IDEA,
        gate="projectIdea",
        path=("projectIdea",),
        task_key="projectIdea",
        partial=True,
    )


def _problem_part(shape: Shape, field: str) -> SectionBinding:
    return SectionBinding(
        shape=shape,
        chapter=CHAPTER_PROBLEM,
        gate="problemAnalysis",
        path=("problemAnalysis", field),
        task_key="problemAnalysis",
    )


SECTION_BINDINGS: Dict[SectionKind, SectionBinding] = {
    SectionKind.PROBLEM_ANALYSIS: SectionBinding(PROBLEM_ANALYSIS, CHAPTER_PROBLEM, gate="problemAnalysis"),
    SectionKind.PROJECT_IDEA: SectionBinding(PROJECT_IDEA, CHAPTER_IDEA, gate="projectIdea"),
    SectionKind.GENERAL_OBJECTIVES: SectionBinding(OBJECTIVES, CHAPTER_OBJECTIVES, max_tokens=6144),
    SectionKind.SPECIFIC_OBJECTIVES: SectionBinding(OBJECTIVES, CHAPTER_OBJECTIVES, max_tokens=6144),
    SectionKind.PROJECT_MANAGEMENT: SectionBinding(PROJECT_MANAGEMENT, CHAPTER_ACTIVITIES, max_tokens=8192),
    SectionKind.ACTIVITIES: SectionBinding(ACTIVITIES, CHAPTER_ACTIVITIES, max_tokens=16384),
    SectionKind.RISKS: SectionBinding(RISKS, CHAPTER_ACTIVITIES, max_tokens=6144),
    SectionKind.OUTPUTS: SectionBinding(RESULTS, CHAPTER_RESULTS),
    SectionKind.OUTCOMES: SectionBinding(RESULTS, CHAPTER_RESULTS),
    SectionKind.IMPACTS: SectionBinding(RESULTS, CHAPTER_RESULTS),
    SectionKind.KERS: SectionBinding(KERS, CHAPTER_RESULTS),
    SectionKind.EXPECTED_RESULTS: SectionBinding(
        RESULTS,
        CHAPTER_RESULTS,
        max_tokens=8192,
        components=("outputs", "outcomes", "impacts"),
    ),
    SectionKind.CORE_PROBLEM: _problem_part(PROBLEM_NODE, "coreProblem"),
    SectionKind.CAUSES: _problem_part(many(TitledItem), "causes"),
    SectionKind.CONSEQUENCES: _problem_part(many(TitledItem), "consequences"),
    SectionKind.PROJECT_TITLE_ACRONYM: _idea_part("projectTitle", "projectAcronym"),
    SectionKind.MAIN_AIM: _idea_part("mainAim"),
    SectionKind.STATE_OF_THE_ART: _idea_part("stateOfTheArt"),
    SectionKind.PROPOSED_SOLUTION: _idea_part("proposedSolution"),
    SectionKind.READINESS_LEVELS: SectionBinding(
        one(ReadinessLevels),
        CHAPTER_IDEA,
        gate="projectIdea",
        path=("projectIdea", "readinessLevels"),
        task_key="projectIdea",
    ),
    SectionKind.POLICIES: SectionBinding(
        many(Policy),
        CHAPTER_IDEA,
        gate="projectIdea",
        path=("projectIdea", "policies"),
        task_key="projectIdea",
    ),
}
