"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from repo_scaffold.scaffold.models import EffectiveConfig, ProjectOptions, ProtectionConfig
from repo_scaffold.scaffold.target import ExecutionContext, ExecutionMode


class FakeSecrets:
    """Secret provider backed by a dict; records every lookup."""

    def __init__(self, values: dict[str, str] | None = None) -> None:
        self.values = dict(values or {})
        self.requested: list[str] = []

    def obtain(self, name: str) -> str:
        self.requested.append(name)
        return self.values[name]

    def prompt(self, name: str) -> str:
        return self.obtain(name)


class FakeHost:
    """In-memory HostClient that records calls in order."""

    def __init__(
        self,
        *,
        calls: list[tuple[Any, ...]],
        authenticated: bool = True,
        existing: set[str] | None = None,
    ) -> None:
        self.calls = calls
        self.authenticated = authenticated
        self.existing = set(existing or set())
        self._token = "test-token" if authenticated else ""

    @property
    def token(self) -> str:
        return self._token

    def is_authenticated(self) -> bool:
        self.calls.append(("host.is_authenticated",))
        return self.authenticated

    def login(self) -> None:
        self.calls.append(("host.login",))
        self._token = "prompted-token"

    def repository_exists(self, full_name: str) -> bool:
        return full_name in self.existing

    def create_repository(
        self, *, owner: str, name: str, private: bool, template: str | None = None
    ) -> None:
        self.calls.append(("host.create_repository", f"{owner}/{name}", private, template))
        self.existing.add(f"{owner}/{name}")

    def clone_url(self, full_name: str) -> str:
        return f"https://github.com/{full_name}.git"

    def set_secret(self, full_name: str, name: str, value: str) -> None:
        self.calls.append(("host.set_secret", full_name, name, value))

    def protect_branch(
        self, *, full_name: str, branch: str, policy: ProtectionConfig, approvals: int
    ) -> None:
        self.calls.append(("host.protect_branch", full_name, branch, approvals))


class FakeVcs:
    """In-memory VcsClient. `fail_on` maps a method name to the error it raises."""

    def __init__(self, workdir: Path, *, calls: list[tuple[Any, ...]]) -> None:
        self.workdir = workdir
        self.calls = calls
        self.initialized = False
        self.commits = 0
        self.staged = False
        self.auth_env: dict[str, str] = {}
        self.fail_on: dict[str, Exception] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((f"vcs.{name}", *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    def set_auth(self, env: dict[str, str]) -> None:
        self.auth_env.update(env)

    def is_initialized(self) -> bool:
        return self.initialized

    def init(self) -> None:
        self._record("init")
        self.initialized = True

    def clone(self, url: str) -> None:
        self._record("clone", url)
        self.workdir.mkdir(parents=True, exist_ok=True)
        self.initialized = True

    def exclude(self, relative_path: str) -> None:
        self._record("exclude", relative_path)

    def add_all(self) -> None:
        self._record("add_all")
        self.staged = True

    def has_staged_changes(self) -> bool:
        return self.staged

    def commit(self, message: str, *, allow_empty: bool = False) -> None:
        self._record("commit", message)
        self.commits += 1
        self.staged = False

    def has_commits(self) -> bool:
        return self.commits > 0

    def switch_default_branch(self, branch: str) -> None:
        self._record("switch_default_branch", branch)

    def checkout_new_branch(self, branch: str) -> None:
        self._record("checkout_new_branch", branch)

    def push(self, branch: str, *, set_upstream: bool = False) -> None:
        self._record("push", branch, set_upstream)


class FakeGenerator:
    def __init__(self, *, calls: list[tuple[Any, ...]]) -> None:
        self.calls = calls

    def synthesize(self, options: ProjectOptions, workdir: Path, *, default_name: str) -> None:
        self.calls.append(("generator.synthesize", options.type, default_name))


@pytest.fixture
def calls() -> list[tuple[Any, ...]]:
    return []


@pytest.fixture
def fake_host(calls: list[tuple[Any, ...]]) -> FakeHost:
    return FakeHost(calls=calls)


@pytest.fixture
def make_vcs(calls: list[tuple[Any, ...]]) -> Callable[[Path], FakeVcs]:
    def _make(workdir: Path) -> FakeVcs:
        return FakeVcs(workdir, calls=calls)

    return _make


@pytest.fixture
def fake_generator(calls: list[tuple[Any, ...]]) -> FakeGenerator:
    return FakeGenerator(calls=calls)


@pytest.fixture
def remote_context(tmp_path: Path) -> ExecutionContext:
    return ExecutionContext(
        mode=ExecutionMode.REMOTE,
        owner="acme",
        repo_name="widgets",
        workdir=tmp_path / "widgets",
    )


@pytest.fixture
def local_context(tmp_path: Path) -> ExecutionContext:
    workdir = tmp_path / "local-repo"
    workdir.mkdir()
    return ExecutionContext(
        mode=ExecutionMode.LOCAL,
        owner="acme",
        repo_name="local-repo",
        workdir=workdir,
    )


@pytest.fixture
def full_config() -> EffectiveConfig:
    """A configuration that exercises every stage."""
    return EffectiveConfig.model_validate(
        {
            "source": {"dir": "seed"},
            "github": {
                "owner": "acme",
                "visibility": "private",
                "branches": {"default": "main", "integration": "dev"},
                "protection": {
                    "contexts": ["build"],
                    "approvals": {"dev": 1},
                    "strict": True,
                    "dismissStaleReviews": True,
                    "enforceAdmins": False,
                },
                "secrets": [{"name": "NPM_TOKEN", "fromEnv": "NPM_TOKEN"}],
            },
            "project": {"type": "TypeScriptProject", "packageManager": "npm"},
        }
    )


@pytest.fixture
def seed_root(tmp_path: Path) -> Path:
    """An invocation directory containing a `seed/` directory."""
    root = tmp_path / "invocation"
    (root / "seed").mkdir(parents=True)
    (root / "seed" / "README.md").write_text("# Seeded\n", encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """`configure_logging` replaces root handlers; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
