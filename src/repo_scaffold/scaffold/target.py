"""Derive execution parameters from the effective configuration and target.

The only I/O here is the existence check used to tell a local directory apart
from a remote `owner/name` identifier; it is injectable for tests.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from repo_scaffold.scaffold.errors import InvalidTarget, MissingConfig
from repo_scaffold.scaffold.models import EffectiveConfig

CURRENT_DIR_MARKER = "."


class ExecutionMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Where and against which repository one invocation operates."""

    mode: ExecutionMode
    owner: str
    repo_name: str
    workdir: Path

    @property
    def is_remote(self) -> bool:
        return self.mode is ExecutionMode.REMOTE

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo_name}"


def _split_remote(target: str, configured_owner: str) -> tuple[str, str]:
    if "/" not in target:
        return configured_owner, target.strip()

    parts = target.split("/")
    if len(parts) != 2:
        raise InvalidTarget(f"Remote target must be 'name' or 'owner/name', got {target!r}")
    owner, name = (p.strip() for p in parts)
    if not owner or not name:
        raise InvalidTarget(f"Remote target has an empty owner or name: {target!r}")
    return owner, name


def resolve_target(
    config: EffectiveConfig,
    target: str | None,
    *,
    cwd: Path | None = None,
    exists: Callable[[str], bool] = os.path.exists,
) -> ExecutionContext:
    """Compute the ExecutionContext for a target argument (or its absence).

    Raises:
        MissingConfig if the target is implicit and `github.name` is not set, or
            if `github.owner` / `github.visibility` are absent.
        InvalidTarget for malformed target strings.
    """

    github = config.github
    if target is None:
        if not github.name:
            raise MissingConfig("No target given and the recipe does not set github.name")
        target = github.name

    if not github.owner:
        raise MissingConfig("Recipe must set github.owner")
    if github.visibility is None:
        raise MissingConfig("Recipe must set github.visibility (public or private)")

    if not target.strip():
        raise InvalidTarget("Target must not be empty")

    base = (cwd or Path.cwd()).resolve()

    if target == CURRENT_DIR_MARKER or exists(target):
        workdir = (base / target).resolve()
        return ExecutionContext(
            mode=ExecutionMode.LOCAL,
            owner=github.owner,
            repo_name=workdir.name,
            workdir=workdir,
        )

    owner, repo_name = _split_remote(target, github.owner)
    return ExecutionContext(
        mode=ExecutionMode.REMOTE,
        owner=owner,
        repo_name=repo_name,
        workdir=base / repo_name,
    )
