"""Repository classification strategies."""

from .factory import WEB_PROJECT_TYPES, AnalyzerFactory, detect_project_type
from .strategy import AnalysisStrategy, UnsupportedAnalysisStrategy
from .web_app import WebAppAnalysisStrategy, complexity_level_for_score

__all__ = [
    "WEB_PROJECT_TYPES",
    "AnalysisStrategy",
    "AnalyzerFactory",
    "UnsupportedAnalysisStrategy",
    "WebAppAnalysisStrategy",
    "complexity_level_for_score",
    "detect_project_type",
]
