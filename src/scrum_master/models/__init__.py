"""Domain models: repository snapshots and analysis results."""

from .project import (
    AssigneeType,
    CIStatus,
    CodeQuality,
    ComplexityFactor,
    ComplexityLevel,
    ConfidenceLevel,
    DocumentationQuality,
    EffortEstimation,
    Epic,
    Priority,
    ProjectComplexity,
    ProjectCurrentState,
    ProjectModel,
    ProjectType,
    RiskAssessment,
    RiskLevel,
    ScrumRecommendations,
    Task,
    TechnologyStack,
    UserStory,
)
from .repository import CIConfiguration, FileStructure, Repository

__all__ = [
    "AssigneeType",
    "CIConfiguration",
    "CIStatus",
    "CodeQuality",
    "ComplexityFactor",
    "ComplexityLevel",
    "ConfidenceLevel",
    "DocumentationQuality",
    "EffortEstimation",
    "Epic",
    "FileStructure",
    "Priority",
    "ProjectComplexity",
    "ProjectCurrentState",
    "ProjectModel",
    "ProjectType",
    "Repository",
    "RiskAssessment",
    "RiskLevel",
    "ScrumRecommendations",
    "Task",
    "TechnologyStack",
    "UserStory",
]
