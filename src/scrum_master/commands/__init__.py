"""GitHub commands and the invoker that runs them."""

from .base import CRITICAL_ERROR_PHRASES, CommandResult, GitHubCommand
from .github_commands import (
    BoardData,
    CreateIssuesCommand,
    CreateProjectCommand,
    IssueData,
    ProjectData,
    SetupSprintCommand,
    SprintData,
    UpdateBoardCommand,
)
from .invoker import (
    BatchResult,
    CommandHistory,
    CommandInvoker,
    ExecutionProgress,
    GitHubProjectCommandInvoker,
    InvokerHealth,
    ProjectProgress,
    ProjectSetupCommands,
    ProjectSetupSummary,
)

__all__ = [
    "CRITICAL_ERROR_PHRASES",
    "BatchResult",
    "BoardData",
    "CommandHistory",
    "CommandInvoker",
    "CommandResult",
    "CreateIssuesCommand",
    "CreateProjectCommand",
    "ExecutionProgress",
    "GitHubCommand",
    "GitHubProjectCommandInvoker",
    "InvokerHealth",
    "IssueData",
    "ProjectData",
    "ProjectProgress",
    "ProjectSetupCommands",
    "ProjectSetupSummary",
    "SetupSprintCommand",
    "SprintData",
    "UpdateBoardCommand",
]
