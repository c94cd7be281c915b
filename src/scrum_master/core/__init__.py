"""Workflow orchestration: engine, facade and wiring."""

from .bootstrap import create_auth, create_client, create_engine, create_observers
from .engine import (
    CreatedIssue,
    EngineHealth,
    GitHubProject,
    ProcessingStatus,
    ProjectSetupResult,
    ScrumMasterEngine,
    SprintSetup,
)
from .facade import ProgressReport, ScrumMasterFacade, SprintPlan, plan_sprints
from .issues import build_issue_groups, render_epic_body, render_story_body, render_task_body

__all__ = [
    "CreatedIssue",
    "EngineHealth",
    "GitHubProject",
    "ProcessingStatus",
    "ProgressReport",
    "ProjectSetupResult",
    "ScrumMasterEngine",
    "ScrumMasterFacade",
    "SprintPlan",
    "SprintSetup",
    "build_issue_groups",
    "create_auth",
    "create_client",
    "create_engine",
    "create_observers",
    "plan_sprints",
    "render_epic_body",
    "render_story_body",
    "render_task_body",
]
