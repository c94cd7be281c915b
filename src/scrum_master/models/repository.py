"""Repository snapshot models.

A ``Repository`` is everything the analysis strategies are allowed to look
at: metadata from the repos endpoint, the language breakdown, a shallow view
of the root directory and a few manifest files. It is built once per
analysis and never mutated afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class CIConfiguration:
    """CI systems detected in the repository."""

    has_github_actions: bool = False
    has_jenkins: bool = False
    has_travis: bool = False
    has_circleci: bool = False
    workflows: tuple[str, ...] = ()

    @property
    def has_any(self) -> bool:
        """Whether any CI system was detected."""
        return (
            self.has_github_actions
            or self.has_jenkins
            or self.has_travis
            or self.has_circleci
        )


@dataclass(frozen=True)
class FileStructure:
    """Shallow analysis of the repository root."""

    has_source_directory: bool = False
    source_directory_name: str | None = None
    has_tests: bool = False
    test_directory_name: str | None = None
    has_documentation: bool = False
    documentation_files: tuple[str, ...] = ()
    config_files: tuple[str, ...] = ()
    build_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class Repository:
    """GitHub repository snapshot used as analysis input."""

    owner: str
    name: str
    full_name: str
    url: str
    default_branch: str = "main"
    language: str = "Unknown"
    languages: dict[str, int] = field(default_factory=dict)
    size: int = 0
    stargazers: int = 0
    forks: int = 0
    is_private: bool = False
    has_issues: bool = True
    has_projects: bool = True
    has_wiki: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pushed_at: datetime | None = None
    description: str | None = None
    topics: tuple[str, ...] = ()
    license: str | None = None
    readme: str | None = None
    package_json: dict[str, Any] | None = None
    requirements: tuple[str, ...] = ()
    dockerfile: bool = False
    ci_config: CIConfiguration | None = None
    file_structure: FileStructure | None = None

    @property
    def dependencies(self) -> dict[str, Any]:
        """Merged ``dependencies`` and ``devDependencies`` from package.json."""
        if not self.package_json:
            return {}
        merged: dict[str, Any] = {}
        for key in ("dependencies", "devDependencies"):
            section = self.package_json.get(key)
            if isinstance(section, dict):
                merged.update(section)
        return merged
