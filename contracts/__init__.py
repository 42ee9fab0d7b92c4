"""Pydantic contracts for Grant Forge.

The project document, generation requests and rule sets are typed through
these contracts.
"""

from .generation import (
    Language,
    GenerationMode,
    GenerationRequest,
    GenerationOutcome,
)

from .document import (
    DependencyType,
    TitledItem,
    ProblemAnalysis,
    Policy,
    ReadinessLevel,
    ReadinessLevels,
    ProjectIdea,
    Objective,
    ManagementStructure,
    ProjectManagement,
    Dependency,
    Task,
    Milestone,
    Deliverable,
    WorkPackage,
    RiskCategory,
    RiskLevel,
    Risk,
    ResultItem,
    KeyExploitableResult,
    ProjectDocument,
)

from .rules import (
    TextRuleBlock,
    ListRuleBlock,
    RuleBlock,
    RuleSet,
    parse_version,
)

__all__ = [
    # Generation
    "Language",
    "GenerationMode",
    "GenerationRequest",
    "GenerationOutcome",
    # Document
    "DependencyType",
    "TitledItem",
    "ProblemAnalysis",
    "Policy",
    "ReadinessLevel",
    "ReadinessLevels",
    "ProjectIdea",
    "Objective",
    "ManagementStructure",
    "ProjectManagement",
    "Dependency",
    "Task",
    "Milestone",
    "Deliverable",
    "WorkPackage",
    "RiskCategory",
    "RiskLevel",
    "Risk",
    "ResultItem",
    "KeyExploitableResult",
    "ProjectDocument",
    # Rules
    "TextRuleBlock",
    "ListRuleBlock",
    "RuleBlock",
    "RuleSet",
    "parse_version",
]
