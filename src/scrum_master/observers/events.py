"""Progress events and the observer contract."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """Lifecycle tags carried by progress events."""

    PROJECT_SETUP_STARTED = "project_setup_started"
    REPOSITORY_ANALYSIS_STARTED = "repository_analysis_started"
    REPOSITORY_ANALYSIS_COMPLETED = "repository_analysis_completed"
    PROJECT_CREATION_STARTED = "project_creation_started"
    PROJECT_CREATED = "project_created"
    ISSUE_GENERATION_STARTED = "issue_generation_started"
    ISSUE_CREATED = "issue_created"
    ISSUES_CREATED = "issues_created"
    SPRINT_SETUP_STARTED = "sprint_setup_started"
    SPRINT_SETUP = "sprint_setup"
    BOARD_CONFIGURATION_STARTED = "board_configuration_started"
    BOARD_UPDATED = "board_updated"
    PROGRESS = "progress"
    ERROR = "error"
    COMPLETION = "completion"


class ObserverKind(str, Enum):
    """Capability tag stored next to each registered observer."""

    LOG = "log"
    CHAT = "chat"
    DASHBOARD = "dashboard"
    EMAIL = "email"
    WEBHOOK = "webhook"
    HEALTH = "health"
    METRICS = "metrics"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ProgressEvent:
    """Immutable progress notification.

    ``progress`` is a 0-100 checkpoint chosen by the emitter; it is not
    guaranteed to increase across a workflow.
    """

    type: EventType
    phase: str
    progress: float
    message: str
    data: Any = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (``data`` is passed through as-is)."""
        return {
            "type": self.type.value,
            "phase": self.phase,
            "progress": self.progress,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


def json_default(value: Any) -> Any:
    """``json.dumps`` fallback for the objects events commonly carry."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, set | frozenset | tuple):
        return list(value)
    return str(value)


class ProgressObserver(ABC):
    """Subscriber notified of every published progress event."""

    kind: ObserverKind = ObserverKind.CUSTOM

    @abstractmethod
    async def update(self, event: ProgressEvent) -> None:
        """Handle one event. Implementations should not raise."""

    @abstractmethod
    def get_name(self) -> str:
        """Human-readable observer name."""

    @abstractmethod
    def is_enabled(self) -> bool:
        """Whether the subject should deliver events to this observer."""
