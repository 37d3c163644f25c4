"""Thin wrapper around the local `git` executable.

Every command runs with an explicit `cwd`; the process working directory is
never changed. HTTPS authentication for clone/push is passed through git's
`GIT_CONFIG_*` environment (an `http.extraHeader`), so the token is not
written into `.git/config`.
"""

from __future__ import annotations

import base64
import logging
import os
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from repo_scaffold.scaffold.errors import CommandError

logger = logging.getLogger(__name__)

Runner = Callable[[Sequence[str], Path, dict[str, str]], subprocess.CompletedProcess[str]]


def run_command(
    cmd: Sequence[str], cwd: Path, env: dict[str, str]
) -> subprocess.CompletedProcess[str]:
    """Run a command, capturing combined output. Never raises on exit status."""

    logger.debug("Running command", extra={"cmd": list(cmd), "cwd": str(cwd)})
    return subprocess.run(
        list(cmd),
        cwd=str(cwd),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    )


def auth_env(*, token: str, web_url: str) -> dict[str, str]:
    """Git config environment that authenticates HTTPS requests to `web_url`."""

    basic = base64.b64encode(f"x-access-token:{token}".encode()).decode("ascii")
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": f"http.{web_url.rstrip('/')}/.extraheader",
        "GIT_CONFIG_VALUE_0": f"AUTHORIZATION: basic {basic}",
        "GIT_TERMINAL_PROMPT": "0",
    }


class VcsClient(Protocol):
    workdir: Path

    def set_auth(self, env: dict[str, str]) -> None: ...

    def is_initialized(self) -> bool: ...

    def init(self) -> None: ...

    def clone(self, url: str) -> None: ...

    def exclude(self, relative_path: str) -> None: ...

    def add_all(self) -> None: ...

    def has_staged_changes(self) -> bool: ...

    def commit(self, message: str, *, allow_empty: bool = False) -> None: ...

    def has_commits(self) -> bool: ...

    def switch_default_branch(self, branch: str) -> None: ...

    def checkout_new_branch(self, branch: str) -> None: ...

    def push(self, branch: str, *, set_upstream: bool = False) -> None: ...


class GitRepo:
    """Git operations against one working directory."""

    def __init__(
        self,
        workdir: Path,
        *,
        extra_env: dict[str, str] | None = None,
        runner: Runner = run_command,
    ) -> None:
        self.workdir = workdir
        self._extra_env = dict(extra_env or {})
        self._runner = runner

    def set_auth(self, env: dict[str, str]) -> None:
        self._extra_env.update(env)

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self._extra_env)
        return env

    def _git(self, *args: str, cwd: Path | None = None) -> str:
        cmd = ["git", *args]
        result = self._runner(cmd, cwd or self.workdir, self._env())
        if result.returncode != 0:
            raise CommandError(cmd, result.returncode, result.stdout or "")
        return result.stdout or ""

    def _ok(self, *args: str) -> bool:
        result = self._runner(["git", *args], self.workdir, self._env())
        return result.returncode == 0

    def is_initialized(self) -> bool:
        return (self.workdir / ".git").exists()

    def init(self) -> None:
        self._git("init")

    def clone(self, url: str) -> None:
        # Clone into workdir from its parent; workdir must not exist yet.
        self._git("clone", url, self.workdir.name, cwd=self.workdir.parent)

    def exclude(self, relative_path: str) -> None:
        """List a path in `.git/info/exclude` (idempotent)."""

        exclude_file = self.workdir / ".git" / "info" / "exclude"
        exclude_file.parent.mkdir(parents=True, exist_ok=True)
        text = exclude_file.read_text(encoding="utf-8") if exclude_file.exists() else ""
        entry = f"/{relative_path.lstrip('/')}"
        if entry in text.splitlines():
            return
        with exclude_file.open("a", encoding="utf-8") as f:
            if text and not text.endswith("\n"):
                f.write("\n")
            f.write(entry + "\n")

    def add_all(self) -> None:
        self._git("add", "-A")

    def has_staged_changes(self) -> bool:
        # `diff --cached --quiet` exits 1 when there are staged changes. On an
        # unborn branch compare against the index contents instead.
        if not self.has_commits():
            return bool(self._git("ls-files", "--cached").strip())
        return not self._ok("diff", "--cached", "--quiet")

    def commit(self, message: str, *, allow_empty: bool = False) -> None:
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self._git(*args)

    def has_commits(self) -> bool:
        return self._ok("rev-parse", "--verify", "--quiet", "HEAD")

    def current_branch(self) -> str:
        return self._git("symbolic-ref", "--short", "HEAD").strip()

    def switch_default_branch(self, branch: str) -> None:
        """Make `branch` the checked-out branch, keeping the current commit."""

        if self.current_branch() == branch:
            return
        if self._ok("rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"):
            self._git("checkout", branch)
        elif self.has_commits():
            self._git("checkout", "-b", branch)
        else:
            self._git("symbolic-ref", "HEAD", f"refs/heads/{branch}")

    def checkout_new_branch(self, branch: str) -> None:
        self._git("checkout", "-b", branch)

    def push(self, branch: str, *, set_upstream: bool = False) -> None:
        args = ["push"]
        if set_upstream:
            args.append("-u")
        args.extend(["origin", branch])
        self._git(*args)
