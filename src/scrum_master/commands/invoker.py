"""Command invoker: single, batch and retried execution with undo history."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from .base import CommandResult, GitHubCommand

logger = logging.getLogger(__name__)

DEFAULT_INTER_COMMAND_DELAY = 0.5
HEALTH_WINDOW = 10
HEALTHY_SUCCESS_RATE = 80.0


@dataclass(frozen=True)
class ExecutionProgress:
    """Batch progress tick, published before each step runs."""

    current_step: int
    total_steps: int
    current_command: str
    completed_commands: int
    failed_commands: int


ProgressListener = Callable[[ExecutionProgress], None | Awaitable[None]]


@dataclass
class BatchResult:
    """Outcome of ``execute_batch``."""

    total_commands: int
    successful_commands: int
    failed_commands: int
    results: list[CommandResult]
    failed: list[GitHubCommand]
    start_time: datetime
    end_time: datetime

    @property
    def stopped_early(self) -> bool:
        return len(self.results) < self.total_commands


@dataclass(frozen=True)
class CommandHistoryEntry:
    description: str
    result: CommandResult
    can_undo: bool


@dataclass(frozen=True)
class CommandHistory:
    """Undo history plus counts over every recorded result."""

    commands: list[CommandHistoryEntry]
    total_commands: int
    successful_commands: int
    failed_commands: int


@dataclass(frozen=True)
class InvokerHealth:
    is_healthy: bool
    success_rate: float
    recent_failures: int
    total_commands: int
    is_currently_executing: bool
    last_execution_time: datetime | None = None


class CommandInvoker:
    """Executes commands and keeps the history needed for undo and health.

    Exceptions raised by a command never escape: they are converted into
    failure results. Every result is recorded for health reporting; only
    successful commands are pushed onto the undo history.
    """

    def __init__(self, inter_command_delay: float = DEFAULT_INTER_COMMAND_DELAY):
        self.inter_command_delay = inter_command_delay
        self.is_executing = False
        self._history: list[tuple[GitHubCommand, CommandResult]] = []
        self._results: list[CommandResult] = []
        self._progress_listeners: list[ProgressListener] = []

    async def execute_command(self, command: GitHubCommand) -> CommandResult:
        """Execute one command and record its result."""
        description = command.get_description()
        logger.info(f"Executing: {description}")

        try:
            result = await command.execute()
        except Exception as e:
            logger.exception(f"Error: {description}")
            result = CommandResult.fail(str(e) or type(e).__name__)

        self._results.append(result)
        if result.success:
            self._history.append((command, result))
            logger.info(f"Completed: {description}")
        else:
            logger.error(f"Failed: {description} - {result.error}")
        return result

    async def execute_batch(self, commands: list[GitHubCommand]) -> BatchResult:
        """Execute commands in order.

        A progress tick is published before each step. Failures are tolerated
        unless their error text carries a critical phrase, in which case the
        remaining commands are not attempted. A fixed delay follows every
        step the batch continues past.
        """
        self.is_executing = True
        results: list[CommandResult] = []
        failed: list[GitHubCommand] = []
        started = datetime.now(UTC)

        logger.info(f"Starting batch execution of {len(commands)} commands")
        try:
            for index, command in enumerate(commands):
                await self._notify_progress(
                    ExecutionProgress(
                        current_step=index + 1,
                        total_steps=len(commands),
                        current_command=command.get_description(),
                        completed_commands=index,
                        failed_commands=len(failed),
                    )
                )

                result = await self.execute_command(command)
                results.append(result)

                if not result.success:
                    failed.append(command)
                    if result.is_critical:
                        logger.error("Stopping batch execution due to critical error")
                        break

                await asyncio.sleep(self.inter_command_delay)
        finally:
            self.is_executing = False

        batch = BatchResult(
            total_commands=len(commands),
            successful_commands=sum(1 for r in results if r.success),
            failed_commands=len(failed),
            results=results,
            failed=failed,
            start_time=results[0].executed_at if results else started,
            end_time=datetime.now(UTC),
        )
        logger.info(
            f"Batch execution completed: "
            f"{batch.successful_commands}/{batch.total_commands} successful"
        )
        return batch

    async def execute_with_retry(
        self,
        command: GitHubCommand,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> CommandResult:
        """Execute up to ``max_retries`` times, doubling the delay each time.

        No delay follows the final attempt.
        """
        result = CommandResult.fail("No attempt made")
        delay = retry_delay

        for attempt in range(1, max_retries + 1):
            logger.info(f"Attempt {attempt}/{max_retries}: {command.get_description()}")
            result = await self.execute_command(command)
            if result.success:
                return result

            if attempt < max_retries:
                logger.info(f"Waiting {delay:.2f}s before retry")
                await asyncio.sleep(delay)
                delay *= 2

        logger.error(f"All retry attempts failed for: {command.get_description()}")
        return result

    async def undo_last_command(self) -> bool:
        """Undo the most recent successful command.

        Returns:
            False when there is nothing to undo, or the command refuses or
            fails to undo
        """
        if not self._history:
            logger.warning("No commands to undo")
            return False

        command, _ = self._history[-1]
        description = command.get_description()
        if not command.can_undo():
            logger.warning(f"Cannot undo: {description}")
            return False

        try:
            result = await command.undo()
        except Exception:
            logger.exception(f"Failed to undo: {description}")
            return False
        if not result.success:
            logger.error(f"Failed to undo: {description} - {result.error}")
            return False

        self._history.pop()
        logger.info(f"Successfully undone: {description}")
        return True

    async def undo_last_commands(self, count: int) -> int:
        """Undo up to ``count`` commands, stopping at the first that fails."""
        undone = 0
        for _ in range(count):
            if not await self.undo_last_command():
                break
            undone += 1
        logger.info(f"Rolled back {undone}/{count} commands")
        return undone

    def get_command_history(self) -> CommandHistory:
        return CommandHistory(
            commands=[
                CommandHistoryEntry(cmd.get_description(), result, cmd.can_undo())
                for cmd, result in self._history
            ],
            total_commands=len(self._history),
            successful_commands=sum(1 for r in self._results if r.success),
            failed_commands=sum(1 for r in self._results if not r.success),
        )

    def clear_history(self) -> None:
        self._history.clear()
        self._results.clear()
        logger.info("Command history cleared")

    async def health_check(self) -> InvokerHealth:
        """Success rate over the last ten results; 100 when nothing ran."""
        recent = self._results[-HEALTH_WINDOW:]
        if recent:
            success_rate = sum(1 for r in recent if r.success) / len(recent) * 100
        else:
            success_rate = 100.0

        return InvokerHealth(
            is_healthy=success_rate >= HEALTHY_SUCCESS_RATE,
            success_rate=success_rate,
            recent_failures=sum(1 for r in recent if not r.success),
            total_commands=len(self._history),
            is_currently_executing=self.is_executing,
            last_execution_time=self._results[-1].executed_at if self._results else None,
        )

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._progress_listeners.append(listener)

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        if listener in self._progress_listeners:
            self._progress_listeners.remove(listener)

    async def _notify_progress(self, progress: ExecutionProgress) -> None:
        for listener in list(self._progress_listeners):
            try:
                outcome = listener(progress)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Error in progress listener")


@dataclass(frozen=True)
class ProjectProgress:
    """Progress tick translated into project-setup terms."""

    phase: str
    progress: float
    current_task: str
    completed_tasks: int
    failed_tasks: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class ProjectProgressObserver(Protocol):
    def on_progress(self, progress: ProjectProgress) -> None: ...


@dataclass
class ProjectSetupCommands:
    create_project: GitHubCommand
    create_issues: list[GitHubCommand] = field(default_factory=list)
    setup_sprint: GitHubCommand | None = None
    update_board: GitHubCommand | None = None

    def all_commands(self) -> list[GitHubCommand]:
        commands = [self.create_project, *self.create_issues]
        if self.setup_sprint is not None:
            commands.append(self.setup_sprint)
        if self.update_board is not None:
            commands.append(self.update_board)
        return commands


@dataclass(frozen=True)
class ProjectSetupSummary:
    success: bool
    project_created: bool
    issues_created: int
    sprint_configured: bool
    board_configured: bool
    total_execution_time: float  # seconds
    errors: list[str]


def project_phase(progress: ExecutionProgress) -> str:
    """Setup phase implied by a step's position in the batch."""
    if progress.current_step <= 1:
        return "Project Creation"
    if progress.current_step <= progress.total_steps * 0.7:
        return "Issue Creation"
    if progress.current_step <= progress.total_steps * 0.9:
        return "Sprint Setup"
    return "Board Configuration"


class GitHubProjectCommandInvoker(CommandInvoker):
    """Invoker that runs a whole project setup and reports phase progress."""

    def __init__(self, inter_command_delay: float = DEFAULT_INTER_COMMAND_DELAY):
        super().__init__(inter_command_delay)
        self._observer_listeners: dict[int, ProgressListener] = {}

    def add_observer(self, observer: ProjectProgressObserver) -> None:
        if id(observer) in self._observer_listeners:
            return

        def listener(progress: ExecutionProgress) -> None:
            observer.on_progress(
                ProjectProgress(
                    phase=project_phase(progress),
                    progress=progress.current_step / progress.total_steps * 100,
                    current_task=progress.current_command,
                    completed_tasks=progress.completed_commands,
                    failed_tasks=progress.failed_commands,
                )
            )

        self._observer_listeners[id(observer)] = listener
        self.add_progress_listener(listener)

    def remove_observer(self, observer: ProjectProgressObserver) -> None:
        listener = self._observer_listeners.pop(id(observer), None)
        if listener is not None:
            self.remove_progress_listener(listener)

    async def execute_project_setup(
        self, setup: ProjectSetupCommands
    ) -> ProjectSetupSummary:
        """Run project, issue, sprint and board commands as one batch."""
        commands = setup.all_commands()
        batch = await self.execute_batch(commands)
        outcomes = dict(zip(map(id, commands), batch.results, strict=False))

        def succeeded(command: GitHubCommand | None) -> bool:
            if command is None:
                return False
            result = outcomes.get(id(command))
            return result is not None and result.success

        issues_created = 0
        for command in setup.create_issues:
            result = outcomes.get(id(command))
            if result is not None and result.success and isinstance(result.data, dict):
                issues_created += result.data.get("issue_count", 0)

        return ProjectSetupSummary(
            success=batch.failed_commands == 0 and not batch.stopped_early,
            project_created=succeeded(setup.create_project),
            issues_created=issues_created,
            sprint_configured=succeeded(setup.setup_sprint),
            board_configured=succeeded(setup.update_board),
            total_execution_time=(batch.end_time - batch.start_time).total_seconds(),
            errors=[command.get_description() for command in batch.failed],
        )
