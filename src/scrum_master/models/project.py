"""Project model produced by repository classification.

The analysis strategies turn a ``Repository`` snapshot into a
``ProjectModel``: detected technology stack, an ordinal complexity rating,
scrum recommendations (including generated epics, user stories and tasks),
effort and risk estimates. Downstream issue generation only reads it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .repository import Repository


class ProjectType(str, Enum):
    """Coarse project classification used to pick an analysis strategy."""

    WEB_APPLICATION = "web-application"
    API_SERVICE = "api-service"
    MOBILE_APPLICATION = "mobile-application"
    DESKTOP_APPLICATION = "desktop-application"
    PYTHON_PACKAGE = "python-package"
    PYTHON_DJANGO = "python-django"
    PYTHON_FLASK = "python-flask"
    PYTHON_FASTAPI = "python-fastapi"
    NODE_LIBRARY = "node-library"
    REACT_APPLICATION = "react-application"
    NEXT_JS_APPLICATION = "next-js-application"
    VUE_APPLICATION = "vue-application"
    ANGULAR_APPLICATION = "angular-application"
    MICROSERVICE = "microservice"
    MONOLITH = "monolith"
    UNKNOWN = "unknown"


class ComplexityLevel(str, Enum):
    """Ordinal complexity rating."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class Priority(str, Enum):
    """Backlog item priority."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AssigneeType(str, Enum):
    """Role best suited to pick up a task."""

    SENIOR_DEVELOPER = "senior-developer"
    JUNIOR_DEVELOPER = "junior-developer"
    FRONTEND_DEVELOPER = "frontend-developer"
    BACKEND_DEVELOPER = "backend-developer"
    FULL_STACK_DEVELOPER = "full-stack-developer"
    DEVOPS_ENGINEER = "devops-engineer"
    QA_ENGINEER = "qa-engineer"
    PRODUCT_OWNER = "product-owner"
    SCRUM_MASTER = "scrum-master"


class DocumentationQuality(str, Enum):
    """Rough documentation rating."""

    EXCELLENT = "excellent"
    GOOD = "good"
    ADEQUATE = "adequate"
    POOR = "poor"
    MISSING = "missing"


class CIStatus(str, Enum):
    """Last known CI status."""

    PASSING = "passing"
    FAILING = "failing"
    UNKNOWN = "unknown"


class ConfidenceLevel(str, Enum):
    """Confidence attached to an estimate."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, Enum):
    """Risk severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class TechnologyStack:
    """Technologies detected in the repository."""

    primary_language: str
    languages: dict[str, int] = field(default_factory=dict)
    frameworks: tuple[str, ...] = ()
    databases: tuple[str, ...] = ()
    cloud_platforms: tuple[str, ...] = ()
    cicd_tools: tuple[str, ...] = ()
    testing_frameworks: tuple[str, ...] = ()
    build_tools: tuple[str, ...] = ()
    package_managers: tuple[str, ...] = ()
    containerization: tuple[str, ...] = ()
    infrastructure: tuple[str, ...] = ()


@dataclass(frozen=True)
class ComplexityFactor:
    """One contributor to the complexity rating."""

    factor: str
    impact: ComplexityLevel
    description: str


@dataclass(frozen=True)
class ProjectComplexity:
    """Complexity assessment, overall and per dimension."""

    overall: ComplexityLevel
    score: int
    codebase: ComplexityLevel
    architecture: ComplexityLevel
    dependencies: ComplexityLevel
    testing: ComplexityLevel
    documentation: ComplexityLevel
    factors: tuple[ComplexityFactor, ...] = ()


@dataclass(frozen=True)
class CodeQuality:
    """Placeholder quality scores (0-100) until real metrics are wired in."""

    maintainability: int = 70
    reliability: int = 70
    security: int = 70
    technical_debt_hours: int = 0


@dataclass(frozen=True)
class ProjectCurrentState:
    """What the repository looks like today."""

    has_active_issues: bool
    has_recent_commits: bool
    last_commit_date: datetime | None
    has_documentation: bool
    documentation_quality: DocumentationQuality
    has_tests: bool
    has_ci: bool
    ci_status: CIStatus = CIStatus.UNKNOWN
    code_quality: CodeQuality = field(default_factory=CodeQuality)


@dataclass(frozen=True)
class Epic:
    """Large body of work spanning several sprints."""

    title: str
    description: str
    priority: Priority
    estimated_story_points: int
    estimated_sprints: int
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class UserStory:
    """Sprint-sized piece of user-facing value."""

    title: str
    description: str
    acceptance_criteria: tuple[str, ...]
    priority: Priority
    estimated_story_points: int
    epic: str | None = None
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class Task:
    """Technical task, estimated in hours."""

    title: str
    description: str
    priority: Priority
    estimated_hours: int
    assignee_type: AssigneeType
    prerequisites: tuple[str, ...] = ()
    user_story: str | None = None


@dataclass(frozen=True)
class ScrumRecommendations:
    """Scrum parameters and the generated backlog."""

    recommended_sprint_length: int  # days
    recommended_team_size: int
    recommended_velocity: int  # story points per sprint
    suggested_epics: tuple[Epic, ...] = ()
    suggested_user_stories: tuple[UserStory, ...] = ()
    suggested_tasks: tuple[Task, ...] = ()
    improvement_suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class EffortEstimation:
    """Hours and sprints derived from the complexity rating."""

    total_story_points: int
    total_development_hours: int
    total_testing_hours: int
    total_documentation_hours: int
    total_deployment_hours: int
    estimated_sprints: int
    estimated_team_size: int
    estimated_duration_months: int
    confidence_level: ConfidenceLevel = ConfidenceLevel.MEDIUM


@dataclass(frozen=True)
class RiskAssessment:
    """Overall risk rating plus the individual risk statements."""

    overall_risk: RiskLevel
    technical_risks: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectModel:
    """Complete analysis result for one repository."""

    repository: Repository
    project_type: ProjectType
    technology_stack: TechnologyStack
    complexity: ProjectComplexity
    current_state: ProjectCurrentState
    recommendations: ScrumRecommendations
    estimated_effort: EffortEstimation
    risk_assessment: RiskAssessment
    estimated_duration: int  # days
    team_size: int
    main_features: tuple[str, ...] = ()
    technical_requirements: tuple[str, ...] = ()
    risks: tuple[str, ...] = ()
