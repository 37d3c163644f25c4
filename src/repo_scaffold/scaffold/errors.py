"""Error kinds raised while loading recipes and provisioning a repository.

Every provisioning failure is fatal. Boundary modules translate library
errors (PyGithub, subprocess, filesystem) into one of these kinds; the stage
driver then wraps whatever escapes a step in `StageFailure`.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ScaffoldError(RuntimeError):
    """Base class for all scaffold errors."""


class RecipeNotFound(ScaffoldError):
    def __init__(self, reference: str, tried: Sequence[Path]) -> None:
        self.reference = reference
        self.tried = list(tried)
        paths = ", ".join(str(p) for p in self.tried) or "<none>"
        super().__init__(f"Recipe not found: {reference!r} (tried: {paths})")


class InvalidRecipe(ScaffoldError):
    pass


class MissingConfig(ScaffoldError):
    pass


class InvalidConfig(ScaffoldError):
    pass


class InvalidTarget(ScaffoldError):
    pass


class AuthenticationFailure(ScaffoldError):
    pass


class SecretInjectionFailure(ScaffoldError):
    pass


class RepositoryAlreadyExists(ScaffoldError):
    def __init__(self, full_name: str) -> None:
        self.full_name = full_name
        super().__init__(
            f"Repository already exists: {full_name} "
            "(remove it or target it as a local directory, then re-run)"
        )


class RepositoryCreationFailure(ScaffoldError):
    pass


class LocalInitFailure(ScaffoldError):
    pass


class SeedCopyFailure(ScaffoldError):
    pass


class SeedCommitFailure(ScaffoldError):
    pass


class BranchCreationFailure(ScaffoldError):
    pass


class BranchPushFailure(ScaffoldError):
    pass


class ProtectionApplyFailure(ScaffoldError):
    pass


class GeneratorSynthesisFailure(ScaffoldError):
    pass


class CommandError(ScaffoldError):
    """A local command exited non-zero."""

    def __init__(self, cmd: Sequence[str], returncode: int, output: str) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"Command failed ({returncode}): {' '.join(self.cmd)}\n\n{output}".rstrip()
        )


class StageFailure(ScaffoldError):
    """A provisioning stage failed; `cause` holds the underlying error."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"Failed at stage '{stage}': {cause}")
