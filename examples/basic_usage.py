#!/usr/bin/env python3
"""Dry-run example: show what a scaffold run would do.

This uses the scaffold components directly:

* load settings from `.env`
* merge the given recipes and validate the result
* resolve the target (local directory or `owner/name`)
* print the stages that would run and the `.projenrc.json` that would be written

Nothing is created, cloned, pushed or uploaded.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

from repo_scaffold.scaffold.config import ScaffoldSettings
from repo_scaffold.scaffold.errors import ScaffoldError
from repo_scaffold.scaffold.generator import build_projenrc
from repo_scaffold.scaffold.logging import configure_logging
from repo_scaffold.scaffold.models import parse_effective_config
from repo_scaffold.scaffold.recipes import bundled_recipes_dir, load_recipes
from repo_scaffold.scaffold.target import resolve_target


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Preview a scaffold run (no side effects).")
    parser.add_argument("recipes", nargs="+", help="Recipe names or paths, merged in order")
    parser.add_argument(
        "--target", default=None, help='Target: ".", a path, "name" or "owner/name"'
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ScaffoldSettings()
    configure_logging(settings.log_level)

    recipes_dir = settings.recipes_dir or bundled_recipes_dir()
    try:
        config = parse_effective_config(load_recipes(args.recipes, recipes_dir))
        context = resolve_target(config, args.target, cwd=Path.cwd())
    except ScaffoldError as exc:
        print(f"{type(exc).__name__}: {exc}")
        return 1

    github = config.github
    print(f"Mode:        {context.mode.value}")
    print(f"Repository:  {context.full_name}")
    print(f"Workdir:     {context.workdir}")
    print(f"Visibility:  {github.visibility}")
    print(f"Branches:    {github.branches.default} <- {github.branches.integration}")
    print(f"Template:    {config.source.repo or '-'}")
    print(f"Seed dir:    {config.source.dir or '-'}")
    print(f"Secrets:     {', '.join(s.name for s in github.secrets) or '-'}")
    if github.protection is not None and context.is_remote:
        for branch in (github.branches.integration, github.branches.default):
            approvals = github.protection.approvals_for(branch)
            print(f"Protection:  {branch} (approvals={approvals})")

    if config.project is not None:
        rc = build_projenrc(config.project, default_name=context.repo_name)
        print(".projenrc.json:")
        print(json.dumps(rc, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
