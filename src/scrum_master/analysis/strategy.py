"""Analysis strategy contract."""

from abc import ABC, abstractmethod

from ..exceptions import AnalysisNotSupportedError
from ..models import ProjectModel, ProjectType, Repository


class AnalysisStrategy(ABC):
    """Turns a repository snapshot into a ``ProjectModel``.

    ``analyze`` must be a pure function of the repository: analysing the same
    snapshot twice yields equal models.
    """

    @abstractmethod
    def can_analyze(self, repository: Repository) -> bool:
        """Whether this strategy applies to the repository."""

    @abstractmethod
    def analyze(self, repository: Repository) -> ProjectModel:
        """Classify the repository and derive scrum recommendations."""

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Human-readable strategy name."""

    @abstractmethod
    def get_project_type(self) -> ProjectType:
        """Project type stamped on the models this strategy produces."""


class UnsupportedAnalysisStrategy(AnalysisStrategy):
    """Stand-in for project types without a real strategy yet."""

    def __init__(self, project_type: ProjectType = ProjectType.UNKNOWN):
        self.project_type = project_type

    def can_analyze(self, repository: Repository) -> bool:
        return False

    def analyze(self, repository: Repository) -> ProjectModel:
        raise AnalysisNotSupportedError(
            f"Analysis strategy not implemented for {self.project_type.value}",
            {"project_type": self.project_type.value},
        )

    def get_strategy_name(self) -> str:
        return "Unsupported Analysis Strategy"

    def get_project_type(self) -> ProjectType:
        return self.project_type
