"""Maps coarse project types to analysis strategies."""

import logging

from ..models import ProjectType
from .strategy import AnalysisStrategy, UnsupportedAnalysisStrategy
from .web_app import WebAppAnalysisStrategy

logger = logging.getLogger(__name__)

WEB_PROJECT_TYPES = frozenset(
    {
        ProjectType.WEB_APPLICATION,
        ProjectType.REACT_APPLICATION,
        ProjectType.NEXT_JS_APPLICATION,
        ProjectType.VUE_APPLICATION,
        ProjectType.ANGULAR_APPLICATION,
    }
)


class AnalyzerFactory:
    """Creates the analysis strategy for a project type.

    Only the web family has a real strategy; every other type gets an
    ``UnsupportedAnalysisStrategy`` that refuses to analyze.
    """

    def create_analyzer(self, project_type: ProjectType) -> AnalysisStrategy:
        if project_type in WEB_PROJECT_TYPES:
            return WebAppAnalysisStrategy()
        logger.debug(f"No analysis strategy for {project_type.value}")
        return UnsupportedAnalysisStrategy(project_type)

    def supported_project_types(self) -> frozenset[ProjectType]:
        return WEB_PROJECT_TYPES


def detect_project_type(language: str | None) -> ProjectType:
    """Coarse project type from the repository's primary language."""
    if language in ("TypeScript", "JavaScript"):
        return ProjectType.WEB_APPLICATION
    if language == "Python":
        return ProjectType.PYTHON_PACKAGE
    return ProjectType.UNKNOWN
