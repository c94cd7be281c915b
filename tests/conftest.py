"""
Shared fixtures for scrum master tests.

Provides repository snapshots, mock GitHub clients and helpers for building
progress events, so unit tests never talk to the real GitHub API.
"""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from scrum_master.github.client import GitHubClient
from scrum_master.models import CIConfiguration, FileStructure, Repository
from scrum_master.observers import EventType, ProgressEvent, ProgressObserver


def make_repository(**overrides: Any) -> Repository:
    """Build a React repository snapshot with sensible defaults."""
    values: dict[str, Any] = {
        "owner": "acme",
        "name": "shop",
        "full_name": "acme/shop",
        "url": "https://github.com/acme/shop",
        "language": "TypeScript",
        "languages": {"TypeScript": 120000, "CSS": 8000, "HTML": 2000},
        "size": 1000,
        "pushed_at": datetime(2024, 5, 1, tzinfo=UTC),
        "readme": "# Shop",
        "package_json": {
            "name": "shop",
            "dependencies": {"react": "^18.2.0", "react-dom": "^18.2.0"},
            "devDependencies": {"jest": "^29.0.0", "vite": "^5.0.0"},
        },
        "ci_config": CIConfiguration(),
        "file_structure": FileStructure(
            has_source_directory=True,
            source_directory_name="src",
            has_tests=False,
            has_documentation=True,
            documentation_files=("README.md",),
            build_files=("package.json",),
        ),
    }
    values.update(overrides)
    return Repository(**values)


def make_event(
    event_type: EventType = EventType.PROGRESS,
    phase: str = "Testing",
    progress: float = 50,
    message: str = "Working",
    data: Any = None,
) -> ProgressEvent:
    return ProgressEvent(
        type=event_type, phase=phase, progress=progress, message=message, data=data
    )


class RecordingObserver(ProgressObserver):
    """Observer that keeps every event it receives."""

    def __init__(self, name: str = "Recorder", enabled: bool = True) -> None:
        self.name = name
        self.events: list[ProgressEvent] = []
        self._enabled = enabled

    async def update(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def get_name(self) -> str:
        return self.name

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled


@pytest.fixture
def react_repository() -> Repository:
    return make_repository()


@pytest.fixture
def recording_observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def mock_client() -> MagicMock:
    """
    Mock GitHub client for command and engine tests.

    Why: Commands only depend on a handful of client methods
    What: MagicMock specced on GitHubClient with async API methods
    How: Replaces graphql and REST helpers with AsyncMocks returning
         realistic GitHub payloads
    """
    client = MagicMock(spec=GitHubClient)
    client.graphql = AsyncMock(
        return_value={
            "createProjectV2": {
                "projectV2": {
                    "id": "PVT_1",
                    "number": 7,
                    "url": "https://github.com/orgs/acme/projects/7",
                }
            }
        }
    )

    counter = {"n": 0}

    async def create_issue(owner, repo, title, body, labels=None, assignees=None):
        counter["n"] += 1
        n = counter["n"]
        return {
            "id": 1000 + n,
            "node_id": f"I_{n}",
            "number": n,
            "title": title,
            "html_url": f"https://github.com/{owner}/{repo}/issues/{n}",
        }

    client.create_issue = AsyncMock(side_effect=create_issue)
    client.create_label = AsyncMock(return_value={"name": "sprint-1"})
    client.add_labels_to_issue = AsyncMock(return_value=[{"name": "sprint-1"}])
    return client


@pytest.fixture
def repository_factory():
    return make_repository


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def observer_factory():
    return RecordingObserver
