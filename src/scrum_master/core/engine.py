"""Scrum master engine: the end-to-end project setup workflow.

``setup_project`` runs six steps serially (analyze the repository, create
the project board, create issues, set up the first sprint, configure the
board, summarise) and publishes a progress event before and after each. Any
fault ends the workflow with a single ``error`` event and a failure result;
nothing that was already created is rolled back.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any

from ..analysis import AnalyzerFactory, detect_project_type
from ..commands import (
    BoardData,
    CommandInvoker,
    CommandResult,
    CreateIssuesCommand,
    CreateProjectCommand,
    ExecutionProgress,
    GitHubCommand,
    GitHubProjectCommandInvoker,
    InvokerHealth,
    IssueData,
    ProjectData,
    SetupSprintCommand,
    SprintData,
    UpdateBoardCommand,
)
from ..config.models import WorkflowConfig
from ..exceptions import ScrumMasterError, WorkflowStepError
from ..github import GitHubClient, RepositoryLoader, parse_repository_url
from ..models import ProjectModel, Repository
from ..observers import EventType, ProgressEvent, ProgressSubject
from .issues import build_issue_groups

logger = logging.getLogger(__name__)

RECENT_EVENT_WINDOW = 10


@dataclass(frozen=True)
class GitHubProject:
    id: str
    url: str
    number: int
    title: str
    description: str


@dataclass(frozen=True)
class CreatedIssue:
    id: int
    node_id: str
    number: int
    title: str
    url: str
    kind: str


@dataclass(frozen=True)
class SprintSetup:
    number: int
    name: str
    start_date: date
    end_date: date
    sprint_label: str
    issues_assigned: int


@dataclass(frozen=True)
class ProjectSetupResult:
    """Outcome of ``setup_project``."""

    success: bool
    message: str
    project: GitHubProject | None = None
    repository: Repository | None = None
    project_model: ProjectModel | None = None
    issues: tuple[CreatedIssue, ...] = ()
    sprint: SprintSetup | None = None
    error: str | None = None

    @property
    def issues_created(self) -> int:
        return len(self.issues)

    @property
    def sprint_configured(self) -> bool:
        return self.sprint is not None

    @property
    def project_url(self) -> str | None:
        return self.project.url if self.project else None


@dataclass(frozen=True)
class EngineHealth:
    overall: bool
    command_invoker: InvokerHealth
    recent_events: int
    error_events: int
    is_processing: bool
    last_activity: datetime | None


@dataclass(frozen=True)
class ProcessingStatus:
    is_processing: bool
    current_repository: str | None
    current_project: str | None
    last_event: ProgressEvent | None
    total_observers: int


@dataclass
class _IssueGroup:
    kind: str
    issues: list[IssueData] = field(default_factory=list)


class ScrumMasterEngine(ProgressSubject):
    """Drives repository analysis and GitHub project setup.

    ``is_processing`` is advisory; one engine should run one workflow at a
    time.
    """

    def __init__(
        self,
        client: GitHubClient,
        settings: WorkflowConfig | None = None,
        analyzer_factory: AnalyzerFactory | None = None,
        invoker: CommandInvoker | None = None,
        loader: RepositoryLoader | None = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.settings = settings or WorkflowConfig()
        self.analyzer_factory = analyzer_factory or AnalyzerFactory()
        self.invoker = invoker or GitHubProjectCommandInvoker(
            self.settings.inter_command_delay
        )
        self.loader = loader or RepositoryLoader(client)

        self.is_processing = False
        self.current_repository: Repository | None = None
        self.current_project: ProjectModel | None = None

        self.invoker.add_progress_listener(self._forward_command_progress)

    async def _forward_command_progress(self, progress: ExecutionProgress) -> None:
        await self._emit(
            EventType.PROGRESS,
            "Command Execution",
            progress.current_step / progress.total_steps * 100,
            f"Executing: {progress.current_command}",
            asdict(progress),
        )

    async def _execute_with_retry(self, command: GitHubCommand) -> CommandResult:
        """Run a command that is safe to repeat, per the workflow retry settings."""
        return await self.invoker.execute_with_retry(
            command,
            max_retries=self.settings.retry_attempts,
            retry_delay=self.settings.retry_delay,
        )

    async def _emit(
        self,
        event_type: EventType,
        phase: str,
        progress: float,
        message: str,
        data: Any = None,
    ) -> None:
        await self.notify_observers(
            ProgressEvent(
                type=event_type,
                phase=phase,
                progress=progress,
                message=message,
                data=data,
            )
        )

    async def setup_project(
        self,
        repository_url: str,
        project_title: str,
        project_description: str,
        organization_id: str,
    ) -> ProjectSetupResult:
        """Run the full setup workflow for one repository.

        Returns:
            A success result, or a failure result carrying the error text.
            Exceptions never escape.
        """
        self.is_processing = True
        repository = None
        project = None
        try:
            await self._emit(
                EventType.PROJECT_SETUP_STARTED,
                "Initialization",
                0,
                f"Starting project setup for {project_title}",
                {"repository_url": repository_url, "project_title": project_title},
            )

            repository, model = await self._analyze_repository(repository_url)
            project = await self._create_project(
                organization_id, project_title, project_description
            )
            issues = await self._create_issues(repository, model)
            sprint = await self._setup_sprint(repository, project, issues)
            await self._configure_board(project, issues)
            self._log_summary(project, issues, sprint)

            await self._emit(
                EventType.COMPLETION,
                "Completion",
                100,
                f"Project setup completed successfully for {project_title}",
                {
                    "project": asdict(project),
                    "issues_created": len(issues),
                    "sprint": asdict(sprint),
                },
            )
            return ProjectSetupResult(
                success=True,
                message="Project setup completed successfully",
                project=project,
                repository=repository,
                project_model=model,
                issues=tuple(issues),
                sprint=sprint,
            )

        except Exception as e:
            if isinstance(e, ScrumMasterError):
                logger.error(f"Project setup failed: {e}")
            else:
                logger.exception("Project setup failed")
            error = str(e) or type(e).__name__
            await self._emit(
                EventType.ERROR,
                "Error",
                0,
                f"Project setup failed: {error}",
                {"error": error},
            )
            return ProjectSetupResult(
                success=False,
                message="Project setup failed",
                project=project,
                repository=repository,
                error=error,
            )
        finally:
            self.is_processing = False

    async def _analyze_repository(
        self, repository_url: str
    ) -> tuple[Repository, ProjectModel]:
        await self._emit(
            EventType.REPOSITORY_ANALYSIS_STARTED,
            "Repository Analysis",
            10,
            "Analyzing repository structure and content",
            {"repository_url": repository_url},
        )

        owner, repo = parse_repository_url(repository_url)
        repository = await self.loader.load(owner, repo)
        self.current_repository = repository

        analyzer = self.analyzer_factory.create_analyzer(
            detect_project_type(repository.language)
        )
        if not analyzer.can_analyze(repository):
            logger.warning(
                f"{analyzer.get_strategy_name()} found no strong signals "
                f"in {repository.full_name}"
            )
        model = analyzer.analyze(repository)
        self.current_project = model

        await self._emit(
            EventType.REPOSITORY_ANALYSIS_COMPLETED,
            "Repository Analysis",
            20,
            f"Repository analysis completed: {model.project_type.value}",
            {
                "repository": repository.full_name,
                "project_type": model.project_type.value,
                "complexity": model.complexity.overall.value,
            },
        )
        return repository, model

    async def _create_project(
        self, organization_id: str, title: str, description: str
    ) -> GitHubProject:
        await self._emit(
            EventType.PROJECT_CREATION_STARTED,
            "Project Creation",
            25,
            f"Creating GitHub project: {title}",
            {"title": title, "description": description},
        )

        command = CreateProjectCommand(
            self.client,
            ProjectData(title=title, owner_id=organization_id, description=description),
        )
        result = await self.invoker.execute_command(command)
        if not result.success:
            raise WorkflowStepError("create project", result.error)

        project = GitHubProject(
            id=result.data["project_id"],
            url=result.data["project_url"],
            number=result.data["project_number"],
            title=title,
            description=description,
        )
        await self._emit(
            EventType.PROJECT_CREATED,
            "Project Creation",
            30,
            f"GitHub project created: {title}",
            asdict(project),
        )
        return project

    async def _create_issues(
        self, repository: Repository, model: ProjectModel
    ) -> list[CreatedIssue]:
        await self._emit(
            EventType.ISSUE_GENERATION_STARTED,
            "Issue Generation",
            40,
            "Generating issues based on repository analysis",
            {"repository": repository.name},
        )

        epics, stories, tasks = build_issue_groups(model)
        groups = [
            _IssueGroup(kind, issues)
            for kind, issues in (("epic", epics), ("story", stories), ("task", tasks))
            if issues
        ]
        if not groups:
            raise WorkflowStepError("create issues", "no backlog items were generated")

        commands = [CreateIssuesCommand(self.client, group.issues) for group in groups]
        batch = await self.invoker.execute_batch(commands)

        created: list[CreatedIssue] = []
        for group, result in zip(groups, batch.results, strict=False):
            if not result.data:
                continue
            if not result.success:
                logger.warning(
                    f"Issue group '{group.kind}' stopped after "
                    f"{result.data['issue_count']} of {len(group.issues)} issues"
                )
            created.extend(
                CreatedIssue(kind=group.kind, **issue) for issue in result.data["issues"]
            )

        if not created:
            errors = "; ".join(r.error or "unknown error" for r in batch.results)
            raise WorkflowStepError("create issues", errors)
        if batch.failed_commands:
            logger.warning(
                f"{batch.failed_commands} of {batch.total_commands} issue groups failed"
            )

        await self._emit(
            EventType.ISSUES_CREATED,
            "Issue Generation",
            60,
            f"Created {len(created)} issues",
            {"issues": [asdict(issue) for issue in created]},
        )
        return created

    async def _setup_sprint(
        self,
        repository: Repository,
        project: GitHubProject,
        issues: list[CreatedIssue],
    ) -> SprintSetup:
        sprint_issues = [issue for issue in issues if issue.kind != "epic"]
        await self._emit(
            EventType.SPRINT_SETUP_STARTED,
            "Sprint Setup",
            70,
            "Setting up initial sprint",
            {"issue_count": len(sprint_issues)},
        )

        start = datetime.now(UTC).date()
        end = start + timedelta(weeks=self.settings.sprint_duration_weeks, days=-1)
        data = SprintData(
            owner=repository.owner,
            repo=repository.name,
            number=self.settings.sprint_number,
            name=self.settings.sprint_name,
            start_date=start,
            end_date=end,
            issue_numbers=tuple(issue.number for issue in sprint_issues),
        )
        result = await self._execute_with_retry(
            SetupSprintCommand(self.client, data, project.id)
        )
        if not result.success:
            raise WorkflowStepError("setup sprint", result.error)

        sprint = SprintSetup(
            number=data.number,
            name=data.name,
            start_date=start,
            end_date=end,
            sprint_label=result.data["sprint_label"],
            issues_assigned=result.data["issues_assigned"],
        )
        await self._emit(
            EventType.SPRINT_SETUP,
            "Sprint Setup",
            80,
            f"Sprint setup completed: {sprint.name}",
            asdict(sprint),
        )
        return sprint

    async def _configure_board(
        self, project: GitHubProject, issues: list[CreatedIssue]
    ) -> int:
        await self._emit(
            EventType.BOARD_CONFIGURATION_STARTED,
            "Board Configuration",
            90,
            "Configuring project board views and automation",
            {"project_id": project.id},
        )

        data = BoardData(
            name=project.title, item_ids=tuple(issue.node_id for issue in issues)
        )
        result = await self._execute_with_retry(
            UpdateBoardCommand(self.client, data, project.id)
        )
        if not result.success:
            raise WorkflowStepError("configure board", result.error)

        items = result.data["items_updated"]
        await self._emit(
            EventType.BOARD_UPDATED,
            "Board Configuration",
            95,
            "Board configuration completed",
            {"items_updated": items},
        )
        return items

    def _log_summary(
        self, project: GitHubProject, issues: list[CreatedIssue], sprint: SprintSetup
    ) -> None:
        logger.info(
            f"Project setup complete: {project.title} ({project.url}), "
            f"{len(issues)} issues, sprint '{sprint.name}' "
            f"with {sprint.issues_assigned} issues"
        )

    async def health_check(self) -> EngineHealth:
        """Invoker health combined with errors among the last ten events."""
        invoker_health = await self.invoker.health_check()
        recent = self.get_event_history()[-RECENT_EVENT_WINDOW:]
        errors = sum(1 for event in recent if event.type == EventType.ERROR)
        last = self.get_last_event()

        return EngineHealth(
            overall=invoker_health.is_healthy and errors == 0,
            command_invoker=invoker_health,
            recent_events=len(recent),
            error_events=errors,
            is_processing=self.is_processing,
            last_activity=last.timestamp if last else None,
        )

    def get_processing_status(self) -> ProcessingStatus:
        return ProcessingStatus(
            is_processing=self.is_processing,
            current_repository=(
                self.current_repository.name if self.current_repository else None
            ),
            current_project=(
                self.current_project.project_type.value
                if self.current_project
                else None
            ),
            last_event=self.get_last_event(),
            total_observers=self.get_observer_count(),
        )
