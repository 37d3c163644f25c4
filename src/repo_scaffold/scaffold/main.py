"""CLI entrypoint for repo-scaffold.

Usage: repo-scaffold RECIPE [RECIPE ...] [TARGET]

With a single positional argument it is the recipe and the target comes from
the recipe's `github.name`. With two or more, the last one is the target.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from repo_scaffold import __version__
from repo_scaffold.scaffold.config import ScaffoldSettings
from repo_scaffold.scaffold.errors import InvalidTarget, StageFailure
from repo_scaffold.scaffold.generator import ProjenGenerator
from repo_scaffold.scaffold.git import GitRepo
from repo_scaffold.scaffold.github.client import GitHubHost
from repo_scaffold.scaffold.logging import configure_logging
from repo_scaffold.scaffold.models import parse_effective_config
from repo_scaffold.scaffold.recipes import bundled_data_root, bundled_recipes_dir, load_recipes
from repo_scaffold.scaffold.secrets import PromptingSecretProvider
from repo_scaffold.scaffold.target import resolve_target
from repo_scaffold.scaffold.workflow.provisioning import Provisioner
from repo_scaffold.scaffold.workflow.stages import Stage, StageTracker

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-scaffold",
        description="Create or initialize a GitHub repository from one or more recipes",
    )
    parser.add_argument("--version", action="version", version=f"repo-scaffold {__version__}")
    parser.add_argument(
        "positionals",
        nargs="+",
        metavar="RECIPE [RECIPE ...] [TARGET]",
        help=(
            "Recipe paths or names (merged in order), optionally followed by a target: "
            "a local directory, '.', 'name' or 'owner/name'"
        ),
    )
    parser.add_argument(
        "--recipes-dir",
        default=None,
        help="Directory searched for named recipes (default: SCAFFOLD_RECIPES_DIR or bundled)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=("json", "text"),
        default=None,
        help="Log rendering on stderr (default: LOG_FORMAT or json)",
    )
    return parser


def split_positionals(values: Sequence[str]) -> tuple[list[str], str | None]:
    """Split positionals into (recipe references, target)."""

    if not values:
        raise InvalidTarget("At least one recipe is required")
    if len(values) == 1:
        return [values[0]], None
    return list(values[:-1]), values[-1]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ScaffoldSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(
        args.log_level or settings.log_level, fmt=args.log_format or settings.log_format
    )

    invocation_dir = Path.cwd()
    recipes_dir = Path(args.recipes_dir) if args.recipes_dir else settings.recipes_dir
    if recipes_dir is None:
        recipes_dir = bundled_recipes_dir()
    seed_root = bundled_data_root()
    if settings.seeds_root is not None:
        seed_root = invocation_dir / settings.seeds_root
    secrets_file = invocation_dir / settings.secrets_file

    secrets = PromptingSecretProvider(secrets_file=secrets_file)
    host = GitHubHost(
        secrets=secrets,
        token_env=settings.token_env,
        base_url=settings.github_base_url,
        web_url=settings.github_web_url,
    )
    tracker = StageTracker()

    try:
        with tracker.stage(Stage.PARSING_ARGUMENTS):
            references, target = split_positionals(args.positionals)

        with tracker.stage(Stage.LOADING_RECIPES):
            merged = load_recipes(references, recipes_dir)

        with tracker.stage(Stage.DETERMINING_TARGET):
            config = parse_effective_config(merged)
            context = resolve_target(config, target, cwd=invocation_dir)

        logger.info(
            "Resolved target",
            extra={
                "mode": context.mode.value,
                "repo": context.full_name,
                "workdir": str(context.workdir),
            },
        )

        provisioner = Provisioner(
            config=config,
            context=context,
            host=host,
            vcs=GitRepo(context.workdir),
            generator=ProjenGenerator(settings.generator_argv),
            secrets=secrets,
            seed_root=seed_root,
            secrets_file=secrets_file,
            web_url=settings.github_web_url,
        )
        provisioner.run(tracker=tracker)

    except StageFailure as e:
        logger.error("Scaffold failed", extra={"stage": e.stage, "error": str(e.cause)})
        print(
            f"Failed at stage '{e.stage}': {type(e.cause).__name__}: {e.cause}",
            file=sys.stderr,
        )
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1

    finally:
        host.close()

    print(f"Repository ready: {context.repo_name}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
