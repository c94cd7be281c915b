"""Build ``Repository`` snapshots from the GitHub API."""

import json
import logging
import re
from datetime import datetime
from typing import Any

from ..exceptions import InvalidRepositoryUrlError
from ..models.repository import CIConfiguration, FileStructure, Repository
from .client import GitHubClient
from .exceptions import GitHubNotFoundError

logger = logging.getLogger(__name__)

_REPO_URL_PATTERN = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s#?]+)")

SOURCE_DIRECTORIES = ("src", "lib", "app", "source", "pkg", "public", "static")
TEST_DIRECTORIES = ("tests", "test", "__tests__", "spec", "e2e")
DOC_DIRECTORIES = ("docs", "doc", "documentation", "wiki")
CONFIG_FILES = {
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.json",
    ".prettierrc",
    ".prettierrc.js",
    "tsconfig.json",
    "jest.config.js",
    "setup.cfg",
    "tox.ini",
    ".editorconfig",
    ".env.example",
}
BUILD_FILES = {
    "package.json",
    "webpack.config.js",
    "vite.config.js",
    "vite.config.ts",
    "rollup.config.js",
    "Makefile",
    "pyproject.toml",
    "setup.py",
    "pom.xml",
    "build.gradle",
    "Cargo.toml",
    "go.mod",
}


def parse_repository_url(url: str) -> tuple[str, str]:
    """Split a GitHub URL into owner and repository name.

    Accepts https and ssh forms; a trailing ``.git`` is dropped.

    Raises:
        InvalidRepositoryUrlError: If the URL does not name a repository
    """
    match = _REPO_URL_PATTERN.search(url or "")
    if not match:
        raise InvalidRepositoryUrlError(url)
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        raise InvalidRepositoryUrlError(url)
    return owner, repo


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def analyze_file_structure(entries: list[dict[str, Any]]) -> FileStructure:
    """Classify the root directory listing."""
    dirs = {e["name"] for e in entries if e.get("type") == "dir"}
    files = {e["name"] for e in entries if e.get("type") == "file"}

    source_dir = next((d for d in SOURCE_DIRECTORIES if d in dirs), None)
    test_dir = next((d for d in TEST_DIRECTORIES if d in dirs), None)
    doc_files = sorted(
        f for f in files if f.lower().endswith((".md", ".rst", ".html", ".txt"))
    )
    has_docs = bool(doc_files) or any(d in dirs for d in DOC_DIRECTORIES)

    return FileStructure(
        has_source_directory=source_dir is not None,
        source_directory_name=source_dir,
        has_tests=test_dir is not None,
        test_directory_name=test_dir,
        has_documentation=has_docs,
        documentation_files=tuple(doc_files),
        config_files=tuple(sorted(files & CONFIG_FILES)),
        build_files=tuple(sorted(files & BUILD_FILES)),
    )


class RepositoryLoader:
    """Fetches metadata, languages and manifests for one repository."""

    def __init__(self, client: GitHubClient):
        self.client = client

    async def load(self, owner: str, repo: str) -> Repository:
        """Fetch everything the analysis strategies look at.

        Metadata, root listing and language breakdown are required; manifest
        files are optional and simply left empty when absent.
        """
        repo_data = await self.client.get_repo(owner, repo)
        contents = await self.client.list_contents(owner, repo)
        languages = await self.client.list_languages(owner, repo)

        names = {entry.get("name") for entry in contents}
        package_json = None
        if "package.json" in names:
            package_json = await self._load_package_json(owner, repo)
        requirements: tuple[str, ...] = ()
        if "requirements.txt" in names:
            requirements = await self._load_requirements(owner, repo)
        readme_name = next(
            (n for n in names if n and n.lower().startswith("readme")), None
        )
        readme = (
            await self.client.get_file_text(owner, repo, readme_name)
            if readme_name
            else None
        )

        return Repository(
            owner=owner,
            name=repo,
            full_name=repo_data.get("full_name", f"{owner}/{repo}"),
            url=repo_data.get("html_url", f"https://github.com/{owner}/{repo}"),
            default_branch=repo_data.get("default_branch", "main"),
            language=repo_data.get("language") or "Unknown",
            languages=dict(languages),
            size=repo_data.get("size", 0),
            stargazers=repo_data.get("stargazers_count", 0),
            forks=repo_data.get("forks_count", 0),
            is_private=repo_data.get("private", False),
            has_issues=repo_data.get("has_issues", True),
            has_projects=repo_data.get("has_projects", True),
            has_wiki=repo_data.get("has_wiki", False),
            created_at=_parse_timestamp(repo_data.get("created_at")),
            updated_at=_parse_timestamp(repo_data.get("updated_at")),
            pushed_at=_parse_timestamp(repo_data.get("pushed_at")),
            description=repo_data.get("description"),
            topics=tuple(repo_data.get("topics") or ()),
            license=(repo_data.get("license") or {}).get("name"),
            readme=readme,
            package_json=package_json,
            requirements=requirements,
            dockerfile="Dockerfile" in names,
            ci_config=await self._detect_ci(owner, repo, names),
            file_structure=analyze_file_structure(contents),
        )

    async def _load_package_json(self, owner: str, repo: str) -> dict[str, Any] | None:
        text = await self.client.get_file_text(owner, repo, "package.json")
        if text is None:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring malformed package.json in {owner}/{repo}")
            return None
        return data if isinstance(data, dict) else None

    async def _load_requirements(self, owner: str, repo: str) -> tuple[str, ...]:
        text = await self.client.get_file_text(owner, repo, "requirements.txt")
        if not text:
            return ()
        lines = (line.split("#", 1)[0].strip() for line in text.splitlines())
        return tuple(line for line in lines if line and not line.startswith("-"))

    async def _detect_ci(
        self, owner: str, repo: str, names: set[Any]
    ) -> CIConfiguration:
        workflows: tuple[str, ...] = ()
        if ".github" in names:
            try:
                entries = await self.client.list_contents(
                    owner, repo, ".github/workflows"
                )
                workflows = tuple(
                    e["name"] for e in entries if e.get("type") == "file"
                )
            except GitHubNotFoundError:
                workflows = ()
        return CIConfiguration(
            has_github_actions=bool(workflows),
            has_jenkins="Jenkinsfile" in names,
            has_travis=".travis.yml" in names,
            has_circleci=".circleci" in names,
            workflows=workflows,
        )
