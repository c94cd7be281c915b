"""Concrete GitHub commands used by the project setup workflow."""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

from ..github.client import GitHubClient
from ..github.exceptions import GitHubValidationError
from .base import GitHubCommand

logger = logging.getLogger(__name__)

SPRINT_LABEL_COLOR = "0e8a16"

CREATE_PROJECT_MUTATION = """
mutation($ownerId: ID!, $title: String!) {
  createProjectV2(input: {ownerId: $ownerId, title: $title}) {
    projectV2 { id number url }
  }
}
"""

UPDATE_PROJECT_MUTATION = """
mutation($projectId: ID!, $description: String!) {
  updateProjectV2(input: {projectId: $projectId, shortDescription: $description}) {
    projectV2 { id }
  }
}
"""

ADD_ITEM_MUTATION = """
mutation($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
    item { id }
  }
}
"""


@dataclass(frozen=True)
class ProjectData:
    """Input for creating a project board."""

    title: str
    owner_id: str
    description: str = ""


@dataclass(frozen=True)
class IssueData:
    """One issue to open in a repository."""

    owner: str
    repo: str
    title: str
    body: str
    labels: tuple[str, ...] = ()
    assignees: tuple[str, ...] = ()
    issue_type: str = "task"


@dataclass(frozen=True)
class SprintData:
    """A sprint expressed as a label applied to a set of issues."""

    owner: str
    repo: str
    number: int
    name: str
    start_date: date
    end_date: date
    issue_numbers: tuple[int, ...] = ()

    @property
    def label(self) -> str:
        return f"sprint-{self.number}"


@dataclass(frozen=True)
class BoardData:
    """Issue node ids to place on a project board."""

    name: str
    item_ids: tuple[str, ...] = field(default_factory=tuple)


class CreateProjectCommand(GitHubCommand):
    """Create a Projects (v2) board for an owner node."""

    operation = "Project creation"

    def __init__(self, client: GitHubClient, data: ProjectData):
        self.client = client
        self.data = data

    async def _run(self) -> dict[str, Any]:
        result = await self.client.graphql(
            CREATE_PROJECT_MUTATION,
            {"ownerId": self.data.owner_id, "title": self.data.title},
        )
        project = result["createProjectV2"]["projectV2"]

        if self.data.description:
            await self.client.graphql(
                UPDATE_PROJECT_MUTATION,
                {"projectId": project["id"], "description": self.data.description},
            )

        logger.info(f"Created project {project['url']}")
        return {
            "project_id": project["id"],
            "project_url": project["url"],
            "project_number": project["number"],
        }

    def get_description(self) -> str:
        return f"Create Project: {self.data.title}"

    def get_type(self) -> str:
        return "create_project"

    def get_metadata(self) -> dict[str, Any]:
        return asdict(self.data)


class CreateIssuesCommand(GitHubCommand):
    """Open a group of issues one after another."""

    operation = "Issue creation"

    def __init__(self, client: GitHubClient, issues: list[IssueData]):
        self.client = client
        self.issues = list(issues)
        self.created: list[dict[str, Any]] = []

    async def _run(self) -> dict[str, Any]:
        self.created = []
        for issue in self.issues:
            response = await self.client.create_issue(
                issue.owner,
                issue.repo,
                issue.title,
                issue.body,
                labels=list(issue.labels),
                assignees=list(issue.assignees),
            )
            self.created.append(
                {
                    "id": response["id"],
                    "node_id": response["node_id"],
                    "number": response["number"],
                    "title": response["title"],
                    "url": response["html_url"],
                }
            )
            logger.debug(f"Created issue #{response['number']}: {issue.title}")
        return {"issues": list(self.created), "issue_count": len(self.created)}

    def partial_data(self) -> dict[str, Any] | None:
        """Issues opened before the failure, so callers can still track them."""
        if not self.created:
            return None
        return {
            "issues": list(self.created),
            "issue_count": len(self.created),
            "partial": True,
        }

    def get_description(self) -> str:
        return f"Create {len(self.issues)} Issues"

    def get_type(self) -> str:
        return "create_issues"

    def get_metadata(self) -> dict[str, Any]:
        return {
            "count": len(self.issues),
            "types": sorted({issue.issue_type for issue in self.issues}),
        }


class SetupSprintCommand(GitHubCommand):
    """Create the sprint label and apply it to the sprint's issues."""

    operation = "Sprint setup"

    def __init__(self, client: GitHubClient, data: SprintData, project_id: str):
        self.client = client
        self.data = data
        self.project_id = project_id

    async def _run(self) -> dict[str, Any]:
        try:
            await self.client.create_label(
                self.data.owner,
                self.data.repo,
                self.data.label,
                SPRINT_LABEL_COLOR,
                f"{self.data.name} ({self.data.start_date} to {self.data.end_date})",
            )
        except GitHubValidationError as e:
            if not e.already_exists:
                raise
            logger.info(f"Label {self.data.label} already exists, reusing it")

        for number in self.data.issue_numbers:
            await self.client.add_labels_to_issue(
                self.data.owner, self.data.repo, number, [self.data.label]
            )

        return {
            "sprint_label": self.data.label,
            "issues_assigned": len(self.data.issue_numbers),
        }

    def get_description(self) -> str:
        return f"Setup Sprint: {self.data.name}"

    def get_type(self) -> str:
        return "setup_sprint"

    def get_metadata(self) -> dict[str, Any]:
        return {**asdict(self.data), "project_id": self.project_id}


class UpdateBoardCommand(GitHubCommand):
    """Add issues to a project board."""

    operation = "Board update"

    def __init__(self, client: GitHubClient, data: BoardData, project_id: str):
        self.client = client
        self.data = data
        self.project_id = project_id

    async def _run(self) -> dict[str, Any]:
        for content_id in self.data.item_ids:
            await self.client.graphql(
                ADD_ITEM_MUTATION,
                {"projectId": self.project_id, "contentId": content_id},
            )
        return {"board_id": self.project_id, "items_updated": len(self.data.item_ids)}

    def get_description(self) -> str:
        return f"Update Board: {self.data.name}"

    def get_type(self) -> str:
        return "update_board"

    def get_metadata(self) -> dict[str, Any]:
        return {**asdict(self.data), "project_id": self.project_id}
