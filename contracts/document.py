"""Project document contracts.

The document is the user's proposal: a tree of named sections. Models accept
partially authored data (every field defaults to empty) and keep the camelCase
wire form through aliases, so a document loaded from storage round-trips
unchanged. The generation pipeline works on the plain ``dict`` form returned
by ``ProjectDocument.to_data()``.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for document models: camelCase aliases, extra keys preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class DependencyType(str, Enum):
    """Project-scheduling precedence relations."""
    FS = "FS"  # Finish-to-Start
    SS = "SS"  # Start-to-Start
    FF = "FF"  # Finish-to-Finish
    SF = "SF"  # Start-to-Finish


class TitledItem(DocumentModel):
    """Title + description pair (problem tree nodes, core problem)."""
    title: str = ""
    description: str = ""


class ProblemAnalysis(DocumentModel):
    """Chapter 1: central problem with its causes and consequences."""
    core_problem: TitledItem = Field(default_factory=TitledItem)
    causes: List[TitledItem] = Field(default_factory=list)
    consequences: List[TitledItem] = Field(default_factory=list)


class Policy(DocumentModel):
    name: str = ""
    description: str = ""


class ReadinessLevel(DocumentModel):
    level: Optional[int] = None
    justification: str = ""


class ReadinessLevels(DocumentModel):
    """Technology, societal, organisational and legal readiness levels."""
    TRL: ReadinessLevel = Field(default_factory=ReadinessLevel, alias="TRL")
    SRL: ReadinessLevel = Field(default_factory=ReadinessLevel, alias="SRL")
    ORL: ReadinessLevel = Field(default_factory=ReadinessLevel, alias="ORL")
    LRL: ReadinessLevel = Field(default_factory=ReadinessLevel, alias="LRL")


class ProjectIdea(DocumentModel):
    """Chapter 2: concept, positioning and timeframe."""
    project_title: str = ""
    project_acronym: str = ""
    main_aim: str = ""
    state_of_the_art: str = ""
    proposed_solution: str = ""
    policies: List[Policy] = Field(default_factory=list)
    readiness_levels: ReadinessLevels = Field(default_factory=ReadinessLevels)
    start_date: str = Field(default="", description="Project start, YYYY-MM-DD")
    duration_months: Optional[int] = Field(default=None, ge=1)


class Objective(DocumentModel):
    """General or specific objective."""
    title: str = ""
    description: str = ""
    indicator: str = ""


class ManagementStructure(DocumentModel):
    """Organigram labels; short role titles only."""
    coordinator: str = ""
    steering_committee: str = ""
    advisory_board: str = ""
    wp_leaders: str = Field(default="", alias="wpLeaders")


class ProjectManagement(DocumentModel):
    description: str = ""
    structure: ManagementStructure = Field(default_factory=ManagementStructure)


class Dependency(DocumentModel):
    predecessor_id: str = ""
    type: DependencyType = DependencyType.FS


class Task(DocumentModel):
    """Work-package task. Ids follow T<wp>.<n>."""
    id: str = ""
    title: str = ""
    description: str = ""
    start_date: str = Field(default="", description="YYYY-MM-DD")
    end_date: str = Field(default="", description="YYYY-MM-DD")
    dependencies: List[Dependency] = Field(default_factory=list)


class Milestone(DocumentModel):
    """Ids follow M<wp>.<n>."""
    id: str = ""
    description: str = ""
    date: str = Field(default="", description="YYYY-MM-DD")


class Deliverable(DocumentModel):
    """Ids follow D<wp>.<n>."""
    id: str = ""
    title: str = ""
    description: str = ""
    indicator: str = ""


class WorkPackage(DocumentModel):
    """Ids follow WP<n>; never renumbered after deletion."""
    id: str = ""
    title: str = ""
    tasks: List[Task] = Field(default_factory=list)
    milestones: List[Milestone] = Field(default_factory=list)
    deliverables: List[Deliverable] = Field(default_factory=list)


class RiskCategory(str, Enum):
    TECHNICAL = "technical"
    SOCIAL = "social"
    ECONOMIC = "economic"
    ENVIRONMENTAL = "environmental"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Risk(DocumentModel):
    """Ids follow RISK<n>."""
    id: str = ""
    # Plain strings while authoring; the enums constrain generated output only
    category: str = Field(default="", json_schema_extra={"enum": [c.value for c in RiskCategory]})
    title: str = ""
    description: str = ""
    likelihood: str = Field(default="", json_schema_extra={"enum": [level.value for level in RiskLevel]})
    impact: str = Field(default="", json_schema_extra={"enum": [level.value for level in RiskLevel]})
    mitigation: str = ""


class ResultItem(DocumentModel):
    """Output, outcome or impact."""
    title: str = ""
    description: str = ""
    indicator: str = ""


class KeyExploitableResult(DocumentModel):
    """Ids follow KER<n>."""
    id: str = ""
    title: str = ""
    description: str = ""
    exploitation_strategy: str = ""


class ProjectDocument(DocumentModel):
    """The full proposal document owned by the user session."""
    problem_analysis: ProblemAnalysis = Field(default_factory=ProblemAnalysis)
    project_idea: ProjectIdea = Field(default_factory=ProjectIdea)
    general_objectives: List[Objective] = Field(default_factory=list)
    specific_objectives: List[Objective] = Field(default_factory=list)
    project_management: ProjectManagement = Field(default_factory=ProjectManagement)
    activities: List[WorkPackage] = Field(default_factory=list)
    risks: List[Risk] = Field(default_factory=list)
    outputs: List[ResultItem] = Field(default_factory=list)
    outcomes: List[ResultItem] = Field(default_factory=list)
    impacts: List[ResultItem] = Field(default_factory=list)
    kers: List[KeyExploitableResult] = Field(default_factory=list)

    def to_data(self) -> Dict[str, Any]:
        """Plain dict in wire form, as consumed by the pipeline."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_data(cls, data: Optional[Dict[str, Any]]) -> "ProjectDocument":
        """Validate a stored or generated document dict."""
        return cls.model_validate(data or {})
