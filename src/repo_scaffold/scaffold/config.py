"""Settings for the scaffold CLI.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Secrets persisted by the secret prompt are appended to the same `.env` file,
but only the keys declared below are ever read back from it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScaffoldSettings(BaseSettings):
    """Settings for one scaffold invocation.

    Environment variables:
    - LOG_LEVEL                   (optional)
    - LOG_FORMAT                  (optional, json|text)
    - SCAFFOLD_RECIPES_DIR        (optional)
    - SCAFFOLD_SEEDS_ROOT         (optional)
    - SCAFFOLD_SECRETS_FILE       (optional)
    - SCAFFOLD_TOKEN_ENV          (optional)
    - SCAFFOLD_GENERATOR_COMMAND  (optional)
    - GITHUB_BASE_URL             (optional)
    - GITHUB_WEB_URL              (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ScaffoldSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    log_format: Literal["json", "text"] = Field(
        default="json",
        validation_alias="LOG_FORMAT",
        description="Log rendering on stderr",
    )

    recipes_dir: Path | None = Field(
        default=None,
        validation_alias="SCAFFOLD_RECIPES_DIR",
        description="Directory searched for named recipes (default: the bundled recipes)",
    )

    seeds_root: Path | None = Field(
        default=None,
        validation_alias="SCAFFOLD_SEEDS_ROOT",
        description="Directory relative `source.dir` values resolve against (default: bundled)",
    )

    secrets_file: Path = Field(
        default=Path(".env"),
        validation_alias="SCAFFOLD_SECRETS_FILE",
        description="File that prompted secrets may be appended to",
    )

    token_env: str = Field(
        default="GITHUB_TOKEN",
        validation_alias="SCAFFOLD_TOKEN_ENV",
        description="Environment variable holding the GitHub token",
    )

    generator_command: str = Field(
        default="npx projen",
        validation_alias="SCAFFOLD_GENERATOR_COMMAND",
        description="Command that synthesizes a project from .projenrc.json",
    )

    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )

    github_web_url: str = Field(
        default="https://github.com",
        validation_alias="GITHUB_WEB_URL",
        description="GitHub web URL used for clone remotes",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("token_env", "generator_command")
    @classmethod
    def _require_non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @property
    def generator_argv(self) -> list[str]:
        """The generator command split into argv form."""

        return self.generator_command.split()
