"""Typed view over the merged recipe configuration.

Recipes are merged as plain mappings first; the result is validated once into
`EffectiveConfig`. Unknown keys are ignored so recipes can carry extra data.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError

from repo_scaffold.scaffold.errors import InvalidConfig, MissingConfig


class _RecipeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class SourceConfig(_RecipeModel):
    """Where initial content comes from: a template repository or a local directory."""

    repo: str | None = None
    dir: str | None = None


class BranchesConfig(_RecipeModel):
    default: str = "main"
    integration: str = "dev"


class ProtectionConfig(_RecipeModel):
    """Branch protection applied to both the integration and default branch."""

    contexts: list[str] = Field(default_factory=list)
    approvals: dict[str, NonNegativeInt] = Field(default_factory=dict)
    strict: bool = False
    dismiss_stale_reviews: bool = Field(default=False, alias="dismissStaleReviews")
    enforce_admins: bool = Field(default=False, alias="enforceAdmins")

    def approvals_for(self, branch: str) -> int:
        """Required approving reviews for a branch (0 when not listed)."""

        return self.approvals.get(branch, 0)


class SecretDescriptor(_RecipeModel):
    name: str
    from_env: str = Field(alias="fromEnv")


class GitHubSection(_RecipeModel):
    owner: str | None = None
    name: str | None = None
    visibility: Literal["public", "private"] | None = None
    branches: BranchesConfig = Field(default_factory=BranchesConfig)
    protection: ProtectionConfig | None = None
    secrets: list[SecretDescriptor] = Field(default_factory=list)


class ProjectOptions(BaseModel):
    """Generator options. Open-ended: every key is forwarded to the generator."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    type: str = "NodeProject"
    package_manager: str | None = Field(default=None, alias="packageManager")

    def generator_options(self) -> dict[str, Any]:
        """All options except the generator selector, keyed as written in the recipe."""

        data = self.model_dump(by_alias=True, exclude_none=True)
        data.pop("type", None)
        return data


class EffectiveConfig(_RecipeModel):
    source: SourceConfig = Field(default_factory=SourceConfig)
    github: GitHubSection = Field(default_factory=GitHubSection)
    project: ProjectOptions | None = None


def parse_effective_config(merged: dict[str, Any]) -> EffectiveConfig:
    """Validate a merged recipe mapping.

    Raises:
        MissingConfig if a required nested field (e.g. a secret's `fromEnv`) is absent.
        InvalidConfig for any other schema violation.
    """

    try:
        return EffectiveConfig.model_validate(merged)
    except ValidationError as e:
        missing = [err for err in e.errors() if err.get("type") == "missing"]
        if missing:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in missing)
            raise MissingConfig(f"Recipe is missing required fields: {fields}") from e
        raise InvalidConfig(f"Recipe configuration is invalid:\n{e}") from e
