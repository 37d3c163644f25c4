"""Project synthesis through projen.

The recipe's `project.type` selects one of a closed set of projen project
classes. The options are written as structured JSON to `.projenrc.json`, which
projen reads natively; nothing is rendered as source code. Enum-typed options
(the package manager) are written as the enum member's fully-qualified name,
looked up from a fixed table so typos fail here rather than inside projen.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from repo_scaffold.scaffold.errors import CommandError, GeneratorSynthesisFailure
from repo_scaffold.scaffold.git import run_command
from repo_scaffold.scaffold.models import ProjectOptions

logger = logging.getLogger(__name__)

PROJENRC_FILE = ".projenrc.json"

Runner = Callable[[Sequence[str], Path, dict[str, str]], Any]


@dataclass(frozen=True, slots=True)
class ProjenVariant:
    fqn: str
    node_based: bool = True


PROJECT_TYPES: dict[str, ProjenVariant] = {
    "NodeProject": ProjenVariant("projen.javascript.NodeProject"),
    "TypeScriptProject": ProjenVariant("projen.typescript.TypeScriptProject"),
    "TypeScriptAppProject": ProjenVariant("projen.typescript.TypeScriptAppProject"),
    "JsiiProject": ProjenVariant("projen.cdk.JsiiProject"),
    "AwsCdkTypeScriptApp": ProjenVariant("projen.awscdk.AwsCdkTypeScriptApp"),
    "AwsCdkConstructLibrary": ProjenVariant("projen.awscdk.AwsCdkConstructLibrary"),
    "ReactProject": ProjenVariant("projen.web.ReactProject"),
    "NextJsProject": ProjenVariant("projen.web.NextJsProject"),
    "PythonProject": ProjenVariant("projen.python.PythonProject", node_based=False),
}

PACKAGE_MANAGER_ENUM = "projen.javascript.NodePackageManager"
PACKAGE_MANAGERS: tuple[str, ...] = (
    "NPM",
    "PNPM",
    "YARN",
    "YARN_CLASSIC",
    "YARN2",
    "YARN_BERRY",
    "BUN",
)


def package_manager_ref(name: str) -> str:
    """Fully-qualified enum reference for a package manager name (case-insensitive)."""

    member = name.strip().upper().replace("-", "_")
    if member not in PACKAGE_MANAGERS:
        allowed = ", ".join(p.lower() for p in PACKAGE_MANAGERS)
        raise GeneratorSynthesisFailure(
            f"Unknown packageManager {name!r} (expected one of: {allowed})"
        )
    return f"{PACKAGE_MANAGER_ENUM}.{member}"


def build_projenrc(options: ProjectOptions, *, default_name: str) -> dict[str, Any]:
    """The `.projenrc.json` document for a project."""

    variant = PROJECT_TYPES.get(options.type)
    if variant is None:
        known = ", ".join(sorted(PROJECT_TYPES))
        raise GeneratorSynthesisFailure(
            f"Unsupported project.type {options.type!r} (expected one of: {known})"
        )

    rc: dict[str, Any] = {"type": variant.fqn}
    rc.update(options.generator_options())
    rc.setdefault("name", default_name)

    if options.package_manager is not None:
        if not variant.node_based:
            raise GeneratorSynthesisFailure(
                f"packageManager is not supported by project.type {options.type!r}"
            )
        rc["packageManager"] = package_manager_ref(options.package_manager)

    return rc


class ProjectGenerator(Protocol):
    def synthesize(self, options: ProjectOptions, workdir: Path, *, default_name: str) -> None: ...


class ProjenGenerator:
    """Writes `.projenrc.json` and runs the projen CLI in the working tree."""

    def __init__(
        self, command: Sequence[str] = ("npx", "projen"), *, runner: Runner = run_command
    ) -> None:
        self._command = list(command)
        self._runner = runner

    def synthesize(self, options: ProjectOptions, workdir: Path, *, default_name: str) -> None:
        rc = build_projenrc(options, default_name=default_name)
        rc_path = workdir / PROJENRC_FILE
        rc_path.write_text(json.dumps(rc, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.info("Wrote projen config", extra={"path": str(rc_path), "type": rc["type"]})

        result = self._runner(self._command, workdir, os.environ.copy())
        if result.returncode != 0:
            error = CommandError(self._command, result.returncode, result.stdout or "")
            raise GeneratorSynthesisFailure(str(error)) from error
