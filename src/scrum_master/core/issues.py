"""Render backlog items from a ``ProjectModel`` as GitHub issues."""

from ..commands import IssueData
from ..models import Epic, Priority, ProjectModel, Task, UserStory


def render_epic_body(epic: Epic) -> str:
    return (
        f"## Epic: {epic.title}\n\n{epic.description}\n\n"
        f"**Estimated Story Points:** {epic.estimated_story_points}\n"
        f"**Estimated Sprints:** {epic.estimated_sprints}"
    )


def render_story_body(story: UserStory) -> str:
    criteria = "\n".join(f"- {item}" for item in story.acceptance_criteria)
    return (
        f"## User Story: {story.title}\n\n{story.description}\n\n"
        f"**Acceptance Criteria:**\n{criteria}\n\n"
        f"**Story Points:** {story.estimated_story_points}"
    )


def render_task_body(task: Task) -> str:
    prerequisites = ", ".join(task.prerequisites) or "None"
    return (
        f"## Task: {task.title}\n\n{task.description}\n\n"
        f"**Estimated Hours:** {task.estimated_hours}\n"
        f"**Prerequisites:** {prerequisites}"
    )


def build_issue_groups(
    project: ProjectModel,
) -> tuple[list[IssueData], list[IssueData], list[IssueData]]:
    """Epic, user-story and task issues, in that order."""
    owner = project.repository.owner
    repo = project.repository.name
    recommendations = project.recommendations

    epics = [
        IssueData(
            owner=owner,
            repo=repo,
            title=epic.title,
            body=render_epic_body(epic),
            labels=("epic", f"priority-{epic.priority.value}"),
            issue_type="feature",
        )
        for epic in recommendations.suggested_epics
    ]
    stories = [
        IssueData(
            owner=owner,
            repo=repo,
            title=story.title,
            body=render_story_body(story),
            labels=("user-story", f"priority-{story.priority.value}", *story.labels),
            issue_type="bug" if story.priority == Priority.CRITICAL else "feature",
        )
        for story in recommendations.suggested_user_stories
    ]
    tasks = [
        IssueData(
            owner=owner,
            repo=repo,
            title=task.title,
            body=render_task_body(task),
            labels=("task", f"priority-{task.priority.value}"),
            issue_type="task",
        )
        for task in recommendations.suggested_tasks
    ]
    return epics, stories, tasks
