"""Shared test fixtures for gha-freeze."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from ghafreeze.config import FreezeConfig
from ghafreeze.core.backup import BackupManager
from ghafreeze.core.credentials import CredentialSource
from ghafreeze.core.orchestrator import PinningOrchestrator
from ghafreeze.errors import RateLimitError, RefNotFoundError, ResolutionError
from ghafreeze.models.ratelimit import RateLimitStatus

CHECKOUT_SHA = "b4ffde65f46336ab88eb53be808477a3936bae11"
SETUP_PYTHON_SHA = "0a5c61591373683505ea898e09a3ea4f39ef2b9c"
CACHE_SHA = "13aacd865c20de90d75de3b17ebe84f7a17d57d2"
BRANCH_SHA = "1111111111111111111111111111111111111111"
PINNED_SHA = "8e5e7e5ab8b370d6c329ec480221332ada57f0ab"


SAMPLE_WORKFLOW = f"""\
name: CI

on:
  push:
    branches: [main]

jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - name: Set up Python
        uses: actions/setup-python@v5  # keep in sync with docs
        with:
          python-version: "3.12"
      - uses: actions/cache@{PINNED_SHA} # v3
      - uses: ./local-action
      - run: pytest
"""


class FakeCapability:
    """In-memory resolution capability.

    ``tags`` and ``commits`` map ``owner/repo@ref`` to a SHA. Missing keys
    raise RefNotFoundError. ``rate_limit_after`` makes the Nth lookup
    (0-based, counting every call) raise RateLimitError.
    """

    def __init__(
        self,
        *,
        tags: dict[str, str] | None = None,
        commits: dict[str, str] | None = None,
        errors: dict[str, Exception] | None = None,
        rate_limit_after: int | None = None,
    ) -> None:
        self.tags = tags or {}
        self.commits = commits or {}
        self.errors = errors or {}
        self.rate_limit_after = rate_limit_after
        self.calls: list[tuple[str, str]] = []

    def _lookup(self, kind: str, key: str, table: dict[str, str]) -> str:
        if self.rate_limit_after is not None and len(self.calls) >= self.rate_limit_after:
            self.calls.append((kind, key))
            raise RateLimitError("API rate limit exceeded for 127.0.0.1", limit=60, remaining=0)
        self.calls.append((kind, key))
        if key in self.errors:
            raise self.errors[key]
        if key not in table:
            raise RefNotFoundError(f"not found: {key}")
        return table[key]

    def get_tag_commit(self, owner: str, repo: str, tag: str) -> str:
        return self._lookup("tag", f"{owner}/{repo}@{tag}", self.tags)

    def get_commit(self, owner: str, repo: str, ref: str) -> str:
        return self._lookup("commit", f"{owner}/{repo}@{ref}", self.commits)

    def check_rate_limit(self) -> RateLimitStatus:
        return RateLimitStatus(limit=60, remaining=60 - len(self.calls))


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """A temporary repository root with an empty .github/workflows directory."""
    (tmp_path / ".git").mkdir()
    (tmp_path / ".github" / "workflows").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def workflow_dir(repo_root: Path) -> Path:
    return repo_root / ".github" / "workflows"


@pytest.fixture
def write_workflow(workflow_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write a workflow file into the workflow directory."""

    def _factory(name: str = "ci.yml", content: str = SAMPLE_WORKFLOW) -> Path:
        path = workflow_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _factory


@pytest.fixture
def config(workflow_dir: Path) -> FreezeConfig:
    return FreezeConfig(workflow_dir=workflow_dir)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: datetime(2026, 3, 14, 9, 26, 53)


@pytest.fixture
def backup_manager(workflow_dir: Path, fixed_clock: Callable[[], datetime]) -> BackupManager:
    return BackupManager(workflow_dir, clock=fixed_clock)


@pytest.fixture
def fake_capability() -> FakeCapability:
    """A capability that knows the actions used by SAMPLE_WORKFLOW."""
    return FakeCapability(
        tags={
            "actions/checkout@v4": CHECKOUT_SHA,
            "actions/setup-python@v5": SETUP_PYTHON_SHA,
        },
    )


@pytest.fixture
def make_orchestrator(
    config: FreezeConfig, backup_manager: BackupManager
) -> Callable[..., PinningOrchestrator]:
    """Factory fixture: an orchestrator wired to a fake capability per token."""

    def _factory(
        capability: FakeCapability | None = None,
        *,
        tokens: dict[str | None, FakeCapability] | None = None,
        **kwargs,
    ) -> PinningOrchestrator:
        def _capability_for(token: str | None) -> FakeCapability:
            if tokens is not None:
                return tokens[token]
            if capability is None:
                raise ResolutionError("no capability configured")
            return capability

        return PinningOrchestrator(
            config,
            credentials=kwargs.pop("credentials", CredentialSource()),
            capability_factory=_capability_for,
            backup_manager=backup_manager,
            **kwargs,
        )

    return _factory


@pytest.fixture
def make_capability() -> Callable[..., FakeCapability]:
    """Factory fixture: build a FakeCapability with custom tables."""
    return FakeCapability


@pytest.fixture
def shas() -> SimpleNamespace:
    """The commit SHAs used by SAMPLE_WORKFLOW and the fake capability."""
    return SimpleNamespace(
        checkout=CHECKOUT_SHA,
        setup_python=SETUP_PYTHON_SHA,
        cache=CACHE_SHA,
        branch=BRANCH_SHA,
        pinned=PINNED_SHA,
    )


@pytest.fixture
def sample_workflow() -> str:
    return SAMPLE_WORKFLOW
