"""Unit tests for the git wrapper.

Command lines are checked through a recording runner; one test drives a real
`git` binary when it is available.
"""

from __future__ import annotations

import base64
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

import pytest

from repo_scaffold.scaffold.errors import CommandError
from repo_scaffold.scaffold.git import GitRepo, auth_env


class _Runner:
    """Returns a scripted exit status per git subcommand prefix."""

    def __init__(self, results: dict[tuple[str, ...], tuple[int, str]] | None = None) -> None:
        self.results = results or {}
        self.commands: list[list[str]] = []
        self.cwds: list[Path] = []
        self.envs: list[dict[str, str]] = []

    def __call__(
        self, cmd: Sequence[str], cwd: Path, env: dict[str, str]
    ) -> subprocess.CompletedProcess[str]:
        cmd = list(cmd)
        self.commands.append(cmd)
        self.cwds.append(cwd)
        self.envs.append(env)
        args = tuple(cmd[1:])
        for prefix, (code, out) in self.results.items():
            if args[: len(prefix)] == prefix:
                return subprocess.CompletedProcess(cmd, code, stdout=out)
        return subprocess.CompletedProcess(cmd, 0, stdout="")


def test_auth_env_builds_basic_extraheader() -> None:
    env = auth_env(token="t0k", web_url="https://github.com/")

    assert env["GIT_CONFIG_COUNT"] == "1"
    assert env["GIT_CONFIG_KEY_0"] == "http.https://github.com/.extraheader"
    encoded = env["GIT_CONFIG_VALUE_0"].removeprefix("AUTHORIZATION: basic ")
    assert base64.b64decode(encoded).decode() == "x-access-token:t0k"
    assert env["GIT_TERMINAL_PROMPT"] == "0"


def test_auth_env_reaches_every_command(tmp_path: Path) -> None:
    runner = _Runner()
    repo = GitRepo(tmp_path, runner=runner)
    repo.set_auth({"GIT_CONFIG_COUNT": "1"})

    repo.push("main")

    assert runner.envs[-1]["GIT_CONFIG_COUNT"] == "1"


def test_clone_runs_from_parent(tmp_path: Path) -> None:
    runner = _Runner()
    repo = GitRepo(tmp_path / "widgets", runner=runner)

    repo.clone("https://github.com/acme/widgets.git")

    assert runner.commands == [
        ["git", "clone", "https://github.com/acme/widgets.git", "widgets"]
    ]
    assert runner.cwds == [tmp_path]


def test_push_with_upstream(tmp_path: Path) -> None:
    runner = _Runner()
    GitRepo(tmp_path, runner=runner).push("dev", set_upstream=True)

    assert runner.commands == [["git", "push", "-u", "origin", "dev"]]


def test_failed_command_raises(tmp_path: Path) -> None:
    runner = _Runner({("push",): (1, "rejected")})

    with pytest.raises(CommandError) as excinfo:
        GitRepo(tmp_path, runner=runner).push("main")
    assert excinfo.value.returncode == 1
    assert "rejected" in str(excinfo.value)


def test_switch_default_branch_on_unborn_head(tmp_path: Path) -> None:
    runner = _Runner(
        {
            ("symbolic-ref", "--short", "HEAD"): (0, "master\n"),
            ("rev-parse",): (1, ""),
        }
    )

    GitRepo(tmp_path, runner=runner).switch_default_branch("main")

    assert runner.commands[-1] == ["git", "symbolic-ref", "HEAD", "refs/heads/main"]


def test_switch_default_branch_noop_when_current(tmp_path: Path) -> None:
    runner = _Runner({("symbolic-ref", "--short", "HEAD"): (0, "main\n")})

    GitRepo(tmp_path, runner=runner).switch_default_branch("main")

    assert runner.commands == [["git", "symbolic-ref", "--short", "HEAD"]]


def test_staged_changes_on_unborn_branch_use_index(tmp_path: Path) -> None:
    runner = _Runner({("rev-parse",): (1, ""), ("ls-files",): (0, "README.md\n")})

    assert GitRepo(tmp_path, runner=runner).has_staged_changes() is True


def test_staged_changes_after_first_commit(tmp_path: Path) -> None:
    runner = _Runner({("diff", "--cached", "--quiet"): (1, "")})

    assert GitRepo(tmp_path, runner=runner).has_staged_changes() is True


def test_empty_commit_flag(tmp_path: Path) -> None:
    runner = _Runner()
    GitRepo(tmp_path, runner=runner).commit("chore: initial commit", allow_empty=True)

    assert runner.commands == [
        ["git", "commit", "-m", "chore: initial commit", "--allow-empty"]
    ]


def test_exclude_is_idempotent(tmp_path: Path) -> None:
    info = tmp_path / ".git" / "info"
    info.mkdir(parents=True)
    (info / "exclude").write_text("# git ls-files --others --exclude-from=.git/info/exclude")
    repo = GitRepo(tmp_path, runner=_Runner())

    repo.exclude(".env")
    repo.exclude(".env")

    lines = (info / "exclude").read_text().splitlines()
    assert lines[-1] == "/.env"
    assert lines.count("/.env") == 1


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_real_repository_seed_flow(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    repo = GitRepo(tmp_path)

    repo.init()
    assert repo.is_initialized()
    assert repo.has_commits() is False

    repo.switch_default_branch("main")
    (tmp_path / "README.md").write_text("# hello\n")
    repo.add_all()
    assert repo.has_staged_changes() is True
    repo.commit("chore: seed")

    assert repo.has_commits() is True
    assert repo.current_branch() == "main"
    repo.add_all()
    assert repo.has_staged_changes() is False

    repo.checkout_new_branch("dev")
    assert repo.current_branch() == "dev"
