"""
Unit tests for the scrum master engine.

Why: The engine runs the whole setup workflow; its event sequence, result
     shape and failure handling are what the CLI and sinks rely on.

What: Tests a successful end-to-end setup, failures at each boundary,
      health and processing status.

How: Uses the mock GitHub client fixture and a mock repository loader,
     with no delay between batch steps.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from scrum_master.config import WorkflowConfig
from scrum_master.core import ScrumMasterEngine
from scrum_master.github import (
    GitHubAuthenticationError,
    GitHubNotFoundError,
    GitHubServerError,
    RepositoryLoader,
)
from scrum_master.observers import EventType

REPO_URL = "https://github.com/acme/shop"


@pytest.fixture
def loader(react_repository) -> MagicMock:
    loader = MagicMock(spec=RepositoryLoader)
    loader.load = AsyncMock(return_value=react_repository)
    return loader


@pytest.fixture
def engine(mock_client, loader, recording_observer) -> ScrumMasterEngine:
    engine = ScrumMasterEngine(
        mock_client,
        settings=WorkflowConfig(
            inter_command_delay=0, retry_delay=0, sprint_name="Kickoff"
        ),
        loader=loader,
    )
    engine.add_observer(recording_observer)
    return engine


async def run_setup(engine: ScrumMasterEngine, url: str = REPO_URL):
    return await engine.setup_project(url, "Shop Board", "Scrum project", "O_acme")


class TestSuccessfulSetup:
    async def test_result(self, engine, loader) -> None:
        """
        Why: Callers report project URL, issue count and sprint from the result
        What: A full run produces a success result with every artefact
        How: Runs setup against the mock client and inspects the result
        """
        result = await run_setup(engine)

        assert result.success
        assert result.error is None
        assert result.project_url == "https://github.com/orgs/acme/projects/7"
        assert result.project.number == 7
        assert result.issues_created == 14
        assert result.sprint_configured
        assert result.sprint.name == "Kickoff"
        assert result.sprint.sprint_label == "sprint-1"
        assert result.sprint.end_date - result.sprint.start_date == timedelta(days=13)
        loader.load.assert_awaited_once_with("acme", "shop")

    async def test_issue_kinds_and_sprint_membership(self, engine, mock_client) -> None:
        result = await run_setup(engine)

        kinds = [issue.kind for issue in result.issues]
        assert kinds.count("epic") == 4
        assert kinds.count("story") == 5
        assert kinds.count("task") == 5
        assert result.sprint.issues_assigned == 10
        assert mock_client.add_labels_to_issue.await_count == 10

    async def test_board_receives_every_issue(self, engine, mock_client) -> None:
        result = await run_setup(engine)

        add_item_calls = [
            call
            for call in mock_client.graphql.await_args_list
            if "contentId" in call.args[1]
        ]
        assert len(add_item_calls) == result.issues_created

    async def test_event_sequence(self, engine, recording_observer) -> None:
        """
        Why: Sinks and dashboards key off the lifecycle event order
        What: Checkpoint events arrive in workflow order with fixed progress
        How: Records every event and compares type and progress
        """
        await run_setup(engine)

        milestones = [
            (event.type, event.progress)
            for event in recording_observer.events
            if event.type != EventType.PROGRESS
        ]
        assert milestones == [
            (EventType.PROJECT_SETUP_STARTED, 0),
            (EventType.REPOSITORY_ANALYSIS_STARTED, 10),
            (EventType.REPOSITORY_ANALYSIS_COMPLETED, 20),
            (EventType.PROJECT_CREATION_STARTED, 25),
            (EventType.PROJECT_CREATED, 30),
            (EventType.ISSUE_GENERATION_STARTED, 40),
            (EventType.ISSUES_CREATED, 60),
            (EventType.SPRINT_SETUP_STARTED, 70),
            (EventType.SPRINT_SETUP, 80),
            (EventType.BOARD_CONFIGURATION_STARTED, 90),
            (EventType.BOARD_UPDATED, 95),
            (EventType.COMPLETION, 100),
        ]
        ticks = [e for e in recording_observer.events if e.type == EventType.PROGRESS]
        assert [e.phase for e in ticks] == ["Command Execution"] * 3
        assert ticks[-1].progress == pytest.approx(100.0)

    async def test_status_and_health_after_run(self, engine) -> None:
        await run_setup(engine)

        status = engine.get_processing_status()
        health = await engine.health_check()

        assert not status.is_processing
        assert status.current_repository == "shop"
        assert status.current_project == "web-application"
        assert status.last_event.type == EventType.COMPLETION
        assert health.overall
        assert health.error_events == 0
        assert health.recent_events == 10


class TestFailures:
    async def test_invalid_url(self, engine, recording_observer, loader) -> None:
        result = await run_setup(engine, "https://example.com/not-github")

        assert not result.success
        assert result.error == "Invalid GitHub repository URL"
        assert recording_observer.events[-1].type == EventType.ERROR
        assert recording_observer.events[-1].phase == "Error"
        loader.load.assert_not_awaited()

    async def test_repository_not_found(self, engine, loader, recording_observer) -> None:
        loader.load.side_effect = GitHubNotFoundError("Not Found", 404)

        result = await run_setup(engine)

        assert not result.success
        assert result.error == "Not Found"
        error_events = [e for e in recording_observer.events if e.type == EventType.ERROR]
        assert len(error_events) == 1
        assert error_events[0].progress == 0
        assert not engine.is_processing

    async def test_project_creation_failure_stops_workflow(
        self, engine, mock_client
    ) -> None:
        """
        Why: Without a project there is nothing to attach issues to
        What: A failed create-project command ends the run before issues
        How: The GraphQL mutation raises an authentication error
        """
        mock_client.graphql.side_effect = GitHubAuthenticationError("Bad credentials", 401)

        result = await run_setup(engine)

        assert not result.success
        assert "authentication failed" in result.error
        assert result.project is None
        mock_client.create_issue.assert_not_awaited()

    async def test_all_issue_groups_failing(self, engine, mock_client) -> None:
        mock_client.create_issue.side_effect = GitHubServerError("Server Error", 500)

        result = await run_setup(engine)

        assert not result.success
        assert result.error.startswith("Failed to create issues")
        assert result.project is not None
        mock_client.create_label.assert_not_awaited()

    async def test_partially_created_group_is_still_tracked(
        self, engine, mock_client
    ) -> None:
        """
        Why: Issues opened before a failure exist on GitHub
        What: They still go into the sprint and onto the board
        How: The second story fails, so the story group stops after one issue
        """
        create = mock_client.create_issue.side_effect
        calls = {"n": 0}

        async def flaky_create(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 6:
                raise GitHubServerError("Server Error", 500)
            return await create(*args, **kwargs)

        mock_client.create_issue.side_effect = flaky_create

        result = await run_setup(engine)

        assert result.success
        kinds = [issue.kind for issue in result.issues]
        assert (kinds.count("epic"), kinds.count("story"), kinds.count("task")) == (4, 1, 5)
        assert result.sprint.issues_assigned == 6
        add_item_calls = [
            call
            for call in mock_client.graphql.await_args_list
            if "contentId" in call.args[1]
        ]
        assert len(add_item_calls) == 10

    async def test_transient_board_failure_is_retried(self, engine, mock_client) -> None:
        """
        Why: Adding items to a board is safe to repeat after a 5xx
        What: The board step is retried using the workflow retry settings
        How: The first add-item mutation fails, every later one succeeds
        """
        graphql = mock_client.graphql.return_value
        failed = {"done": False}

        async def flaky_graphql(query, variables=None):
            if "contentId" in (variables or {}) and not failed["done"]:
                failed["done"] = True
                raise GitHubServerError("Server Error", 502)
            return graphql

        mock_client.graphql.side_effect = flaky_graphql

        result = await run_setup(engine)

        assert result.success
        assert failed["done"]
        invoker_health = (await engine.health_check()).command_invoker
        assert invoker_health.recent_failures == 1
        assert invoker_health.total_commands == 6

    async def test_failure_makes_engine_unhealthy(self, engine, loader) -> None:
        loader.load.side_effect = GitHubNotFoundError("Not Found", 404)
        await run_setup(engine)

        health = await engine.health_check()

        assert not health.overall
        assert health.error_events == 1
        assert health.command_invoker.is_healthy
