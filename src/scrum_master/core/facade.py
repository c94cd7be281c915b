"""Simplified entry points over the engine."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from ..exceptions import InvalidRepositoryUrlError, ScrumMasterError
from ..github import parse_repository_url
from ..models import Priority, ProjectModel, UserStory
from ..observers import ProgressEvent
from .engine import ProjectSetupResult, ScrumMasterEngine

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


@dataclass(frozen=True)
class SprintPlan:
    """Stories selected for one sprint."""

    number: int
    capacity: int
    stories: tuple[UserStory, ...]

    @property
    def story_points(self) -> int:
        return sum(story.estimated_story_points for story in self.stories)


@dataclass(frozen=True)
class ProgressReport:
    generated_at: datetime
    total_events: int
    events_by_type: dict[str, int]
    average_progress: float
    error_rate: float
    is_processing: bool
    current_repository: str | None
    last_event: ProgressEvent | None


def plan_sprints(
    stories: list[UserStory] | tuple[UserStory, ...], velocity: int
) -> list[SprintPlan]:
    """Greedy fill of stories, highest priority first, up to ``velocity`` points.

    A story larger than the velocity gets a sprint of its own.
    """
    remaining = sorted(stories, key=lambda story: PRIORITY_ORDER[story.priority])
    plans: list[SprintPlan] = []
    while remaining:
        selected: list[UserStory] = []
        points = 0
        for story in list(remaining):
            if selected and points + story.estimated_story_points > velocity:
                continue
            selected.append(story)
            points += story.estimated_story_points
            remaining.remove(story)
        plans.append(SprintPlan(len(plans) + 1, velocity, tuple(selected)))
    return plans


class ScrumMasterFacade:
    """One-call operations for callers that do not need the engine's detail."""

    def __init__(self, engine: ScrumMasterEngine):
        self.engine = engine

    async def initialize_project(
        self,
        repository_url: str,
        organization_id: str,
        title: str | None = None,
        description: str | None = None,
    ) -> ProjectSetupResult:
        """Set up a project, deriving a title and description when omitted."""
        try:
            owner, repo = parse_repository_url(repository_url)
        except InvalidRepositoryUrlError as e:
            return ProjectSetupResult(
                success=False, message="Failed to initialize project", error=str(e)
            )

        return await self.engine.setup_project(
            repository_url,
            title or f"{repo} Scrum Board",
            description or f"Scrum project for {owner}/{repo}",
            organization_id,
        )

    def plan_sprint(
        self, sprint_number: int, project: ProjectModel | None = None
    ) -> SprintPlan:
        """Plan sprint ``sprint_number`` from the analyzed project's stories.

        Raises:
            ScrumMasterError: If there is no analyzed project or no such sprint
        """
        model = project or self.engine.current_project
        if model is None:
            raise ScrumMasterError("No analyzed project; run initialize_project first")
        if sprint_number < 1:
            raise ScrumMasterError(f"Invalid sprint number: {sprint_number}")

        velocity = model.recommendations.recommended_velocity
        plans = plan_sprints(model.recommendations.suggested_user_stories, velocity)
        if sprint_number > len(plans):
            logger.info(f"Sprint {sprint_number} has no remaining stories")
            return SprintPlan(sprint_number, velocity, ())
        return plans[sprint_number - 1]

    def progress_report(self) -> ProgressReport:
        stats = self.engine.get_event_statistics()
        status = self.engine.get_processing_status()
        return ProgressReport(
            generated_at=datetime.now(UTC),
            total_events=stats.total_events,
            events_by_type=stats.events_by_type,
            average_progress=stats.average_progress,
            error_rate=stats.error_rate,
            is_processing=status.is_processing,
            current_repository=status.current_repository,
            last_event=status.last_event,
        )
