"""Analysis strategy for JavaScript/TypeScript web applications.

Everything here is a heuristic over the repository snapshot: dependency
names from ``package.json``, the root directory listing, byte size and the
language breakdown. The complexity score is additive and bucketed into the
four ``ComplexityLevel`` values; all downstream numbers come from fixed
tables keyed by that level.
"""

import math

from ..models import (
    AssigneeType,
    CIStatus,
    ComplexityFactor,
    ComplexityLevel,
    ConfidenceLevel,
    DocumentationQuality,
    EffortEstimation,
    Epic,
    Priority,
    ProjectComplexity,
    ProjectCurrentState,
    ProjectModel,
    ProjectType,
    Repository,
    RiskAssessment,
    RiskLevel,
    ScrumRecommendations,
    Task,
    TechnologyStack,
    UserStory,
)
from .strategy import AnalysisStrategy

WEB_FRAMEWORK_DEPENDENCIES = (
    "react",
    "vue",
    "angular",
    "next",
    "nuxt",
    "svelte",
    "gatsby",
    "express",
    "fastify",
    "koa",
)
WEB_DIRECTORY_PATTERNS = ("public", "static", "assets", "src/components", "src/pages")

TESTING_DEPENDENCIES = {"jest": "Jest", "cypress": "Cypress", "playwright": "Playwright"}
BUILD_DEPENDENCIES = {"webpack": "Webpack", "vite": "Vite", "rollup": "Rollup"}
DATABASE_DEPENDENCIES = {
    "pg": "PostgreSQL",
    "mysql": "MySQL",
    "mysql2": "MySQL",
    "mongodb": "MongoDB",
    "mongoose": "MongoDB",
    "redis": "Redis",
    "sqlite3": "SQLite",
}

BASE_EFFORT_HOURS = 160
HOURS_PER_STORY_POINT = 8
HOURS_PER_SPRINT = 80
HOURS_PER_MONTH = 160

EFFORT_MULTIPLIERS = {
    ComplexityLevel.LOW: 1.0,
    ComplexityLevel.MEDIUM: 1.5,
    ComplexityLevel.HIGH: 2.0,
    ComplexityLevel.VERY_HIGH: 3.0,
}
BASE_DURATION_DAYS = {
    ComplexityLevel.LOW: 30,
    ComplexityLevel.MEDIUM: 60,
    ComplexityLevel.HIGH: 120,
    ComplexityLevel.VERY_HIGH: 180,
}
BASE_TEAM_SIZE = {
    ComplexityLevel.LOW: 2,
    ComplexityLevel.MEDIUM: 4,
    ComplexityLevel.HIGH: 6,
    ComplexityLevel.VERY_HIGH: 8,
}
FRAMEWORK_FEATURES = {
    "React": ("React component-based UI", "React state management", "React routing"),
    "Next.js": (
        "Next.js server-side rendering",
        "Next.js static site generation",
        "Next.js API routes",
    ),
    "Vue.js": (
        "Vue.js reactive data binding",
        "Vue.js component composition",
        "Vue Router navigation",
    ),
    "Angular": (
        "Angular TypeScript integration",
        "Angular dependency injection",
        "Angular CLI tooling",
    ),
}
IMPROVEMENT_SUGGESTIONS = (
    "Add comprehensive testing suite",
    "Implement CI/CD pipeline",
    "Add API documentation",
    "Set up monitoring and logging",
)


def is_complex(level: ComplexityLevel) -> bool:
    return level in (ComplexityLevel.HIGH, ComplexityLevel.VERY_HIGH)


def complexity_level_for_score(score: int) -> ComplexityLevel:
    """Bucket an additive complexity score."""
    if score >= 6:
        return ComplexityLevel.VERY_HIGH
    if score >= 4:
        return ComplexityLevel.HIGH
    if score >= 2:
        return ComplexityLevel.MEDIUM
    return ComplexityLevel.LOW


def complexity_score(repository: Repository, framework_count: int) -> int:
    """Points for byte size, language diversity and framework count."""
    score = 0
    if repository.size > 100000:
        score += 3
    elif repository.size > 50000:
        score += 2
    elif repository.size > 10000:
        score += 1

    language_count = len(repository.languages)
    if language_count > 5:
        score += 2
    elif language_count > 3:
        score += 1

    if framework_count > 3:
        score += 2
    elif framework_count > 1:
        score += 1
    return score


class WebAppAnalysisStrategy(AnalysisStrategy):
    """Classifies web front ends and Node.js web services."""

    def can_analyze(self, repository: Repository) -> bool:
        dependencies = repository.dependencies
        if any(name in dependencies for name in WEB_FRAMEWORK_DEPENDENCIES):
            return True

        structure = repository.file_structure
        if structure is None:
            return False
        if any(name.endswith(".html") for name in structure.documentation_files):
            return True
        source_dir = structure.source_directory_name or ""
        return any(pattern in source_dir for pattern in WEB_DIRECTORY_PATTERNS)

    def get_strategy_name(self) -> str:
        return "WebApp Analysis Strategy"

    def get_project_type(self) -> ProjectType:
        return ProjectType.WEB_APPLICATION

    def analyze(self, repository: Repository) -> ProjectModel:
        stack = self.detect_technology_stack(repository)
        complexity = self.assess_complexity(repository, stack)
        current_state = self.assess_current_state(repository)
        recommendations = self.generate_recommendations(
            repository, stack, complexity, current_state
        )

        return ProjectModel(
            repository=repository,
            project_type=self.get_project_type(),
            technology_stack=stack,
            complexity=complexity,
            current_state=current_state,
            recommendations=recommendations,
            estimated_effort=self.estimate_effort(complexity),
            risk_assessment=self.assess_risks(repository, stack, complexity),
            estimated_duration=self.estimate_duration(repository, complexity),
            team_size=self.calculate_team_size(repository, complexity),
            main_features=self.identify_main_features(stack),
            technical_requirements=self.define_technical_requirements(
                repository, stack
            ),
            risks=self.identify_risks(repository, stack, complexity),
        )

    def detect_technology_stack(self, repository: Repository) -> TechnologyStack:
        deps = repository.dependencies
        frameworks: list[str] = []

        if "react" in deps:
            frameworks.append("React")
            if "next" in deps:
                frameworks.append("Next.js")
            if "gatsby" in deps:
                frameworks.append("Gatsby")
        if "vue" in deps:
            frameworks.append("Vue.js")
            if "nuxt" in deps:
                frameworks.append("Nuxt.js")
        if "@angular/core" in deps:
            frameworks.append("Angular")
        if "svelte" in deps:
            frameworks.append("Svelte")
        if "express" in deps:
            frameworks.append("Express.js")
        if "fastify" in deps:
            frameworks.append("Fastify")
        if "koa" in deps:
            frameworks.append("Koa")
        if "@nestjs/core" in deps or "nestjs" in deps:
            frameworks.append("NestJS")

        package_managers: tuple[str, ...] = ()
        if repository.package_json is not None:
            manager = repository.package_json.get("packageManager")
            package_managers = (str(manager) if manager else "npm",)

        databases = []
        for dep, name in DATABASE_DEPENDENCIES.items():
            if dep in deps and name not in databases:
                databases.append(name)

        ci = repository.ci_config
        cicd = []
        if ci is not None:
            if ci.has_github_actions:
                cicd.append("GitHub Actions")
            if ci.has_jenkins:
                cicd.append("Jenkins")
            if ci.has_travis:
                cicd.append("Travis CI")
            if ci.has_circleci:
                cicd.append("CircleCI")

        return TechnologyStack(
            primary_language=repository.language,
            languages=dict(repository.languages),
            frameworks=tuple(frameworks),
            databases=tuple(databases),
            cicd_tools=tuple(cicd),
            testing_frameworks=tuple(
                name for dep, name in TESTING_DEPENDENCIES.items() if dep in deps
            ),
            build_tools=tuple(
                name for dep, name in BUILD_DEPENDENCIES.items() if dep in deps
            ),
            package_managers=package_managers,
            containerization=("Docker",) if repository.dockerfile else (),
        )

    def assess_complexity(
        self, repository: Repository, stack: TechnologyStack
    ) -> ProjectComplexity:
        framework_count = len(stack.frameworks)
        score = complexity_score(repository, framework_count)

        return ProjectComplexity(
            overall=complexity_level_for_score(score),
            score=score,
            codebase=self._codebase_complexity(repository),
            architecture=self._architecture_complexity(framework_count),
            dependencies=self._dependency_complexity(repository),
            testing=self._testing_complexity(repository, stack),
            documentation=self._documentation_complexity(repository),
            factors=(
                ComplexityFactor(
                    "Repository Size",
                    ComplexityLevel.HIGH
                    if repository.size > 50000
                    else ComplexityLevel.LOW,
                    f"Repository size: {repository.size} KB",
                ),
                ComplexityFactor(
                    "Technology Stack",
                    ComplexityLevel.MEDIUM
                    if framework_count > 2
                    else ComplexityLevel.LOW,
                    f"Using {framework_count} frameworks: "
                    f"{', '.join(stack.frameworks) or 'none detected'}",
                ),
            ),
        )

    @staticmethod
    def _codebase_complexity(repository: Repository) -> ComplexityLevel:
        if repository.size > 100000:
            return ComplexityLevel.HIGH
        if repository.size > 50000:
            return ComplexityLevel.MEDIUM
        return ComplexityLevel.LOW

    @staticmethod
    def _architecture_complexity(framework_count: int) -> ComplexityLevel:
        if framework_count > 3:
            return ComplexityLevel.HIGH
        if framework_count > 1:
            return ComplexityLevel.MEDIUM
        return ComplexityLevel.LOW

    @staticmethod
    def _dependency_complexity(repository: Repository) -> ComplexityLevel:
        total = len(repository.dependencies)
        if total > 100:
            return ComplexityLevel.HIGH
        if total > 50:
            return ComplexityLevel.MEDIUM
        return ComplexityLevel.LOW

    @staticmethod
    def _testing_complexity(
        repository: Repository, stack: TechnologyStack
    ) -> ComplexityLevel:
        structure = repository.file_structure
        if structure is None or not structure.has_tests:
            return ComplexityLevel.HIGH
        if len(stack.testing_frameworks) > 2:
            return ComplexityLevel.MEDIUM
        return ComplexityLevel.LOW

    @staticmethod
    def _documentation_complexity(repository: Repository) -> ComplexityLevel:
        has_readme = repository.readme is not None
        doc_files = (
            repository.file_structure.documentation_files
            if repository.file_structure
            else ()
        )
        if not has_readme and not repository.has_wiki and not doc_files:
            return ComplexityLevel.HIGH
        if has_readme and (repository.has_wiki or doc_files):
            return ComplexityLevel.LOW
        return ComplexityLevel.MEDIUM

    def assess_current_state(self, repository: Repository) -> ProjectCurrentState:
        structure = repository.file_structure
        has_readme = repository.readme is not None
        has_doc_files = bool(structure and structure.documentation_files)

        if has_readme and has_doc_files:
            quality = DocumentationQuality.GOOD
        elif has_readme or has_doc_files:
            quality = DocumentationQuality.ADEQUATE
        else:
            quality = DocumentationQuality.MISSING

        return ProjectCurrentState(
            has_active_issues=repository.has_issues,
            has_recent_commits=repository.pushed_at is not None,
            last_commit_date=repository.pushed_at,
            has_documentation=has_readme or has_doc_files,
            documentation_quality=quality,
            has_tests=bool(structure and structure.has_tests),
            has_ci=bool(repository.ci_config and repository.ci_config.has_any),
            ci_status=CIStatus.UNKNOWN,
        )

    def generate_recommendations(
        self,
        repository: Repository,
        stack: TechnologyStack,
        complexity: ProjectComplexity,
        current_state: ProjectCurrentState,
    ) -> ScrumRecommendations:
        complex_project = is_complex(complexity.overall)
        velocity = 40 if complex_project else 20

        epics, stories, tasks = self._generate_backlog(
            repository, stack, current_state, velocity
        )

        suggestions = list(IMPROVEMENT_SUGGESTIONS)
        if repository.readme is None:
            suggestions.append("Write README documentation with setup instructions")
        if stack.frameworks:
            suggestions.append("Review component and state management boundaries")
        if is_complex(complexity.overall):
            suggestions.append("Profile and budget page performance")

        return ScrumRecommendations(
            recommended_sprint_length=14 if complex_project else 7,
            recommended_team_size=5 if complex_project else 3,
            recommended_velocity=velocity,
            suggested_epics=tuple(epics),
            suggested_user_stories=tuple(stories),
            suggested_tasks=tuple(tasks),
            improvement_suggestions=tuple(suggestions),
        )

    def _generate_backlog(
        self,
        repository: Repository,
        stack: TechnologyStack,
        current_state: ProjectCurrentState,
        velocity: int,
    ) -> tuple[list[Epic], list[UserStory], list[Task]]:
        """Synthetic epics, stories and tasks for the detected stack and gaps."""
        framework = stack.frameworks[0] if stack.frameworks else "Web"
        plan: list[tuple[str, str, Priority, list[UserStory], list[Task]]] = []

        foundation = f"{framework} Application Foundation"
        plan.append(
            (
                foundation,
                f"Establish the architecture and core user flows of "
                f"{repository.full_name}.",
                Priority.HIGH,
                [
                    UserStory(
                        title="Establish project architecture",
                        description=(
                            "As a developer, I want a documented project structure "
                            "so that features can be added consistently."
                        ),
                        acceptance_criteria=(
                            "Directory layout and module boundaries are agreed",
                            "Linting and formatting run locally",
                        ),
                        priority=Priority.HIGH,
                        estimated_story_points=5,
                        epic=foundation,
                        labels=("architecture",),
                    ),
                    UserStory(
                        title="Implement core user flows",
                        description=(
                            "As a user, I want the primary screens to work end to "
                            "end so that I can complete the main tasks."
                        ),
                        acceptance_criteria=(
                            "Primary navigation works across pages",
                            "Layouts are responsive on mobile and desktop",
                        ),
                        priority=Priority.HIGH,
                        estimated_story_points=8,
                        epic=foundation,
                        labels=("frontend",),
                    ),
                ],
                [
                    Task(
                        title=f"Audit {framework} dependencies",
                        description="Review package.json and remove unused packages.",
                        priority=Priority.MEDIUM,
                        estimated_hours=4,
                        assignee_type=AssigneeType.SENIOR_DEVELOPER,
                        user_story="Establish project architecture",
                    ),
                ],
            )
        )

        if not current_state.has_tests:
            runner = (
                stack.testing_frameworks[0] if stack.testing_frameworks else "Jest"
            )
            plan.append(
                (
                    "Testing Infrastructure",
                    "Introduce automated tests for the existing codebase.",
                    Priority.HIGH,
                    [
                        UserStory(
                            title="Set up automated testing",
                            description=(
                                "As a developer, I want an automated test suite so "
                                "that regressions are caught before release."
                            ),
                            acceptance_criteria=(
                                f"{runner} runs with a single command",
                                "Core modules have unit tests",
                            ),
                            priority=Priority.HIGH,
                            estimated_story_points=5,
                            epic="Testing Infrastructure",
                            labels=("testing",),
                        ),
                    ],
                    [
                        Task(
                            title=f"Configure {runner} test runner",
                            description=f"Add {runner} configuration and scripts.",
                            priority=Priority.HIGH,
                            estimated_hours=4,
                            assignee_type=AssigneeType.QA_ENGINEER,
                            user_story="Set up automated testing",
                        ),
                        Task(
                            title="Write unit tests for core modules",
                            description="Cover the most used components and helpers.",
                            priority=Priority.MEDIUM,
                            estimated_hours=8,
                            assignee_type=AssigneeType.FRONTEND_DEVELOPER,
                            prerequisites=(f"Configure {runner} test runner",),
                            user_story="Set up automated testing",
                        ),
                    ],
                )
            )

        if not current_state.has_ci:
            plan.append(
                (
                    "Continuous Integration and Delivery",
                    "Automate builds, checks and deployments.",
                    Priority.MEDIUM,
                    [
                        UserStory(
                            title="Automate builds and checks",
                            description=(
                                "As a maintainer, I want every pull request built "
                                "and tested so that main always stays releasable."
                            ),
                            acceptance_criteria=(
                                "Pull requests run lint, test and build",
                                "Failing checks block merges",
                            ),
                            priority=Priority.MEDIUM,
                            estimated_story_points=3,
                            epic="Continuous Integration and Delivery",
                            labels=("ci-cd",),
                        ),
                    ],
                    [
                        Task(
                            title="Create GitHub Actions workflow",
                            description="Add a workflow running install, lint, test and build.",
                            priority=Priority.MEDIUM,
                            estimated_hours=4,
                            assignee_type=AssigneeType.DEVOPS_ENGINEER,
                            user_story="Automate builds and checks",
                        ),
                    ],
                )
            )

        if current_state.documentation_quality in (
            DocumentationQuality.MISSING,
            DocumentationQuality.POOR,
        ):
            plan.append(
                (
                    "Project Documentation",
                    "Document setup, architecture and contribution workflow.",
                    Priority.LOW,
                    [
                        UserStory(
                            title="Document setup and architecture",
                            description=(
                                "As a new contributor, I want setup instructions so "
                                "that I can run the project locally."
                            ),
                            acceptance_criteria=(
                                "README explains installation and scripts",
                                "Architecture overview is published",
                            ),
                            priority=Priority.LOW,
                            estimated_story_points=3,
                            epic="Project Documentation",
                            labels=("documentation",),
                        ),
                    ],
                    [
                        Task(
                            title="Write README with setup instructions",
                            description="Describe prerequisites, install and run steps.",
                            priority=Priority.LOW,
                            estimated_hours=3,
                            assignee_type=AssigneeType.JUNIOR_DEVELOPER,
                            user_story="Document setup and architecture",
                        ),
                    ],
                )
            )

        if not repository.dockerfile:
            plan.append(
                (
                    "Containerization",
                    "Package the application as a container image.",
                    Priority.LOW,
                    [
                        UserStory(
                            title="Containerize the application",
                            description=(
                                "As an operator, I want a container image so that "
                                "deployments are reproducible."
                            ),
                            acceptance_criteria=(
                                "Image builds from a clean checkout",
                                "Container serves the application locally",
                            ),
                            priority=Priority.LOW,
                            estimated_story_points=3,
                            epic="Containerization",
                            labels=("devops",),
                        ),
                    ],
                    [
                        Task(
                            title="Write Dockerfile",
                            description="Multi-stage build producing a minimal image.",
                            priority=Priority.LOW,
                            estimated_hours=3,
                            assignee_type=AssigneeType.DEVOPS_ENGINEER,
                            user_story="Containerize the application",
                        ),
                    ],
                )
            )

        epics: list[Epic] = []
        stories: list[UserStory] = []
        tasks: list[Task] = []
        for index, (title, description, priority, epic_stories, epic_tasks) in enumerate(
            plan
        ):
            points = sum(story.estimated_story_points for story in epic_stories)
            epics.append(
                Epic(
                    title=title,
                    description=description,
                    priority=priority,
                    estimated_story_points=points,
                    estimated_sprints=max(1, math.ceil(points / velocity)),
                    dependencies=(foundation,) if index else (),
                )
            )
            stories.extend(epic_stories)
            tasks.extend(epic_tasks)
        return epics, stories, tasks

    def estimate_effort(self, complexity: ProjectComplexity) -> EffortEstimation:
        total_hours = BASE_EFFORT_HOURS * EFFORT_MULTIPLIERS[complexity.overall]
        return EffortEstimation(
            total_story_points=round(total_hours / HOURS_PER_STORY_POINT),
            total_development_hours=round(total_hours * 0.6),
            total_testing_hours=round(total_hours * 0.2),
            total_documentation_hours=round(total_hours * 0.1),
            total_deployment_hours=round(total_hours * 0.1),
            estimated_sprints=math.ceil(total_hours / HOURS_PER_SPRINT),
            estimated_team_size=5 if is_complex(complexity.overall) else 3,
            estimated_duration_months=math.ceil(total_hours / HOURS_PER_MONTH),
            confidence_level=ConfidenceLevel.MEDIUM,
        )

    def assess_risks(
        self,
        repository: Repository,
        stack: TechnologyStack,
        complexity: ProjectComplexity,
    ) -> RiskAssessment:
        if complexity.overall == ComplexityLevel.VERY_HIGH:
            overall = RiskLevel.CRITICAL
        elif complexity.overall == ComplexityLevel.HIGH:
            overall = RiskLevel.HIGH
        else:
            overall = RiskLevel.MEDIUM
        return RiskAssessment(
            overall_risk=overall,
            technical_risks=tuple(self.identify_risks(repository, stack, complexity)),
        )

    def estimate_duration(
        self, repository: Repository, complexity: ProjectComplexity
    ) -> int:
        """Calendar days, scaled up for repositories over 5000 KB."""
        multiplier = max(1.0, (repository.size or 1000) / 5000)
        return math.ceil(BASE_DURATION_DAYS[complexity.overall] * multiplier)

    def calculate_team_size(
        self, repository: Repository, complexity: ProjectComplexity
    ) -> int:
        multiplier = max(1.0, (repository.size or 1000) / 10000)
        return math.ceil(BASE_TEAM_SIZE[complexity.overall] * multiplier)

    def identify_main_features(self, stack: TechnologyStack) -> tuple[str, ...]:
        features: list[str] = []
        for framework in stack.frameworks:
            features.extend(FRAMEWORK_FEATURES.get(framework, ()))
        features.extend(("Responsive design", "Cross-browser compatibility"))
        if stack.databases:
            features.extend(("Data persistence", "Database integration"))
        return tuple(features)

    def define_technical_requirements(
        self, repository: Repository, stack: TechnologyStack
    ) -> tuple[str, ...]:
        requirements: list[str] = []
        if stack.primary_language:
            requirements.append(f"{stack.primary_language} runtime")
        requirements.extend(f"{name} framework" for name in stack.frameworks)
        requirements.extend(f"{name} database" for name in stack.databases)
        requirements.extend(f"{name} build system" for name in stack.build_tools)
        requirements.extend(f"{name} test suite" for name in stack.testing_frameworks)
        if (
            repository.file_structure
            and repository.file_structure.has_tests
            and not stack.testing_frameworks
        ):
            requirements.append("Automated test suite")
        requirements.extend(
            (
                "Web browser support",
                "HTTP/HTTPS protocol",
                "Build and deployment pipeline (CI/CD)",
            )
        )
        if stack.containerization:
            requirements.append("Container runtime")
        return tuple(requirements)

    def identify_risks(
        self,
        repository: Repository,
        stack: TechnologyStack,
        complexity: ProjectComplexity,
    ) -> tuple[str, ...]:
        risks: list[str] = []
        if is_complex(complexity.overall):
            risks.append("High technical complexity may lead to delays")
            risks.append("Integration challenges between multiple systems")
        if len(stack.frameworks) > 3:
            risks.append("Multiple frameworks may increase learning curve")
        if len(stack.databases) > 1:
            risks.append("Multiple databases may complicate data consistency")
        if repository.size > 50000:
            risks.append("Large codebase may impact maintainability")
        if repository.package_json is None:
            risks.append("No package manifest found; dependency versions are unmanaged")
        risks.extend(
            (
                "Browser compatibility issues",
                "Performance optimization challenges",
                "Security vulnerabilities in web components",
            )
        )
        return tuple(risks)
