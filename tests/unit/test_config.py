"""Unit tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from repo_scaffold.scaffold.config import ScaffoldSettings

_ENV_VARS = (
    "LOG_LEVEL",
    "SCAFFOLD_RECIPES_DIR",
    "SCAFFOLD_SEEDS_ROOT",
    "SCAFFOLD_SECRETS_FILE",
    "SCAFFOLD_TOKEN_ENV",
    "SCAFFOLD_GENERATOR_COMMAND",
    "GITHUB_BASE_URL",
    "GITHUB_WEB_URL",
)


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_settings_defaults(clean_env: Path) -> None:
    settings = ScaffoldSettings()

    assert settings.log_level == "INFO"
    assert settings.log_format == "json"
    assert settings.recipes_dir is None
    assert settings.seeds_root is None
    assert settings.secrets_file == Path(".env")
    assert settings.token_env == "GITHUB_TOKEN"
    assert settings.generator_argv == ["npx", "projen"]
    assert settings.github_base_url == "https://api.github.com"


def test_settings_loads_from_dotenv(clean_env: Path) -> None:
    (clean_env / ".env").write_text(
        "\n".join(
            [
                "LOG_LEVEL=DEBUG",
                "SCAFFOLD_RECIPES_DIR=my-recipes",
                "SCAFFOLD_GENERATOR_COMMAND=pnpm dlx projen",
                # Appended secrets live in the same file and are not settings.
                "NPM_TOKEN=abc",
                "",
            ]
        ),
        encoding="utf-8",
    )

    settings = ScaffoldSettings()

    assert settings.log_level == "DEBUG"
    assert settings.recipes_dir == Path("my-recipes")
    assert settings.generator_argv == ["pnpm", "dlx", "projen"]


def test_environment_overrides_dotenv(clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (clean_env / ".env").write_text("SCAFFOLD_TOKEN_ENV=FROM_FILE\n", encoding="utf-8")
    monkeypatch.setenv("SCAFFOLD_TOKEN_ENV", "GH_TOKEN")

    assert ScaffoldSettings().token_env == "GH_TOKEN"


def test_blank_token_env_rejected(clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCAFFOLD_TOKEN_ENV", "  ")

    with pytest.raises(ValidationError):
        ScaffoldSettings()
