from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from repo_scaffold.scaffold.errors import StageFailure
from repo_scaffold.scaffold.logging import set_active_stage

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    PARSING_ARGUMENTS = "parsing-arguments"
    LOADING_RECIPES = "loading-recipes"
    DETERMINING_TARGET = "determining-target"
    CHECKING_AUTH = "checking-auth"
    CREATING_OR_CLONING_REPO = "creating-or-cloning-repo"
    INJECTING_SECRETS = "injecting-secrets"
    SEEDING = "seeding"
    CREATING_INTEGRATION_BRANCH = "creating-integration-branch"
    APPLYING_BRANCH_PROTECTION = "applying-branch-protection"
    RUNNING_GENERATOR_SYNTHESIS = "running-generator-synthesis"


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


class StageOrderError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Step:
    """One named provisioning step."""

    stage: Stage
    action: Callable[[], None]


class StageTracker:
    """Tracks the active stage of one run.

    Stages only move forward; a stage is never entered twice.
    """

    def __init__(self) -> None:
        self._current: Stage | None = None
        set_active_stage(None)

    @property
    def current(self) -> Stage | None:
        return self._current

    def advance(self, to: Stage) -> None:
        if self._current is not None:
            if STAGE_ORDER.index(to) <= STAGE_ORDER.index(self._current):
                raise StageOrderError(f"Illegal stage order: {self._current.value} -> {to.value}")
        self._current = to
        set_active_stage(to.value)
        logger.info("Entering stage")

    @contextmanager
    def stage(self, stage: Stage) -> Iterator[None]:
        """Enter `stage`; any exception raised inside is re-raised as `StageFailure`."""

        self.advance(stage)
        try:
            yield
        except StageFailure:
            raise
        except Exception as e:
            raise StageFailure(stage.value, e) from e


def run_steps(steps: Sequence[Step], *, tracker: StageTracker | None = None) -> None:
    """Run steps in order, stopping at the first failure."""

    tracker = tracker or StageTracker()
    for step in steps:
        with tracker.stage(step.stage):
            step.action()
