"""
Unit tests for the facade, sprint planning and issue rendering.

Why: The facade is the simplest entry point for embedding callers, and the
     rendered issue bodies are what humans read on GitHub.

What: Tests initialize_project defaults, greedy sprint planning, progress
      reports and issue body rendering.

How: Uses mocked engines and in-memory backlog items.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from scrum_master.analysis import WebAppAnalysisStrategy
from scrum_master.core import (
    ProjectSetupResult,
    ScrumMasterEngine,
    ScrumMasterFacade,
    build_issue_groups,
    plan_sprints,
    render_task_body,
)
from scrum_master.exceptions import ScrumMasterError
from scrum_master.models import AssigneeType, Priority, Task, UserStory
from scrum_master.observers import EventType, ProgressSubject


def story(title: str, points: int, priority: Priority = Priority.MEDIUM) -> UserStory:
    return UserStory(
        title=title,
        description="As a user...",
        acceptance_criteria=("works",),
        priority=priority,
        estimated_story_points=points,
    )


class TestPlanSprints:
    def test_fills_by_priority_up_to_velocity(self) -> None:
        """
        Why: Sprints should start with the most important work
        What: Stories are taken highest priority first until velocity is reached
        How: Mixed priorities and sizes against a velocity of 10
        """
        stories = [
            story("low", 3, Priority.LOW),
            story("critical", 5, Priority.CRITICAL),
            story("high", 8, Priority.HIGH),
            story("medium", 2),
        ]

        plans = plan_sprints(stories, velocity=10)

        assert [[s.title for s in p.stories] for p in plans] == [
            ["critical", "medium", "low"],
            ["high"],
        ]
        assert plans[0].story_points == 10
        assert [p.number for p in plans] == [1, 2]

    def test_oversized_story_gets_own_sprint(self) -> None:
        plans = plan_sprints([story("huge", 21), story("small", 1)], velocity=20)

        assert [[s.title for s in p.stories] for p in plans] == [["huge"], ["small"]]

    def test_no_stories(self) -> None:
        assert plan_sprints([], velocity=20) == []


class TestScrumMasterFacade:
    @pytest.fixture
    def engine(self) -> MagicMock:
        engine = MagicMock(spec=ScrumMasterEngine)
        engine.setup_project = AsyncMock(
            return_value=ProjectSetupResult(success=True, message="ok")
        )
        engine.current_project = None
        return engine

    async def test_initialize_project_defaults(self, engine) -> None:
        facade = ScrumMasterFacade(engine)

        await facade.initialize_project("https://github.com/acme/shop", "O_1")

        engine.setup_project.assert_awaited_once_with(
            "https://github.com/acme/shop",
            "shop Scrum Board",
            "Scrum project for acme/shop",
            "O_1",
        )

    async def test_initialize_project_invalid_url(self, engine) -> None:
        result = await ScrumMasterFacade(engine).initialize_project("nope", "O_1")

        assert not result.success
        assert result.error == "Invalid GitHub repository URL"
        engine.setup_project.assert_not_awaited()

    def test_plan_sprint_requires_project(self, engine) -> None:
        with pytest.raises(ScrumMasterError):
            ScrumMasterFacade(engine).plan_sprint(1)

    def test_plan_sprint_from_analysis(self, engine, react_repository) -> None:
        model = WebAppAnalysisStrategy().analyze(react_repository)
        facade = ScrumMasterFacade(engine)

        first = facade.plan_sprint(1, model)
        beyond = facade.plan_sprint(99, model)

        assert first.capacity == model.recommendations.recommended_velocity
        assert 0 < first.story_points <= first.capacity
        assert beyond.stories == ()
        with pytest.raises(ScrumMasterError):
            facade.plan_sprint(0, model)

    async def test_progress_report(self, event_factory) -> None:
        engine = MagicMock(spec=ScrumMasterEngine)
        subject = ProgressSubject()
        await subject.notify_observers(event_factory(EventType.PROGRESS, progress=40))
        await subject.notify_observers(event_factory(EventType.ERROR, progress=0))
        engine.get_event_statistics.side_effect = subject.get_event_statistics
        engine.get_processing_status.return_value = MagicMock(
            is_processing=False, current_repository="shop", last_event=None
        )

        report = ScrumMasterFacade(engine).progress_report()

        assert report.total_events == 2
        assert report.error_rate == pytest.approx(50.0)
        assert report.average_progress == pytest.approx(20.0)
        assert report.current_repository == "shop"


class TestIssueRendering:
    def test_task_without_prerequisites(self) -> None:
        task = Task(
            title="Write Dockerfile",
            description="Multi-stage build.",
            priority=Priority.LOW,
            estimated_hours=3,
            assignee_type=AssigneeType.DEVOPS_ENGINEER,
        )

        body = render_task_body(task)

        assert body.startswith("## Task: Write Dockerfile")
        assert "**Estimated Hours:** 3" in body
        assert body.endswith("**Prerequisites:** None")

    def test_issue_groups_carry_labels(self, react_repository) -> None:
        model = WebAppAnalysisStrategy().analyze(react_repository)

        epics, stories, tasks = build_issue_groups(model)

        assert all(i.owner == "acme" and i.repo == "shop" for i in epics + stories + tasks)
        assert epics[0].labels == ("epic", "priority-high")
        assert epics[0].body.startswith("## Epic: React Application Foundation")
        assert stories[0].labels[:2] == ("user-story", "priority-high")
        assert "architecture" in stories[0].labels
        assert "**Acceptance Criteria:**\n- " in stories[0].body
        assert tasks[0].labels == ("task", "priority-medium")
