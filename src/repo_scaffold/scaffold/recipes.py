"""Recipe resolution, loading and deep-merging.

A recipe reference is either a path to an existing file (relative to the
current working directory) or a name looked up in the recipes directory with
each of `RECIPE_EXTENSIONS` tried in order. The recipes directory defaults to
the one installed with the package, next to the bundled `seeds/`.

Recipes are parsed with PyYAML; JSON documents load the same way since JSON
is a subset of YAML.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping, Sequence
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from repo_scaffold.scaffold.errors import InvalidRecipe, RecipeNotFound

logger = logging.getLogger(__name__)

RecipeDocument = dict[str, Any]

RECIPE_EXTENSIONS: tuple[str, ...] = ("", ".yaml", ".yml", ".json", ".txt")


def bundled_data_root() -> Path:
    """Installed package directory holding `recipes/` and `seeds/`.

    Relative `source.dir` values are resolved against it unless a seeds root
    is configured.
    """

    return Path(str(resources.files("repo_scaffold")))


def bundled_recipes_dir() -> Path:
    return bundled_data_root() / "recipes"


def resolve_recipe(reference: str, recipes_dir: str | Path) -> Path:
    """Return the path a recipe reference points at.

    Raises:
        RecipeNotFound if no candidate is an existing regular file.
    """

    direct = Path(reference)
    if direct.is_file():
        return direct

    base = Path(recipes_dir)
    tried = [direct]
    for ext in RECIPE_EXTENSIONS:
        candidate = base / f"{reference}{ext}"
        tried.append(candidate)
        if candidate.is_file():
            return candidate

    raise RecipeNotFound(reference, tried)


def load_recipe(path: str | Path) -> RecipeDocument:
    """Parse one recipe file. An empty document loads as `{}`."""

    p = Path(path)
    text = p.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidRecipe(f"Recipe is not valid YAML/JSON: {p}\n\n{e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRecipe(
            f"Recipe must be a mapping at the top level, got {type(data).__name__}: {p}"
        )
    return data


def deep_merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> RecipeDocument:
    """Merge `update` over `base` without mutating either.

    Mappings present on both sides are merged recursively; any other value
    from `update` (scalars, sequences) replaces the one in `base`.
    """

    result: RecipeDocument = copy.deepcopy(dict(base))
    for key, value in update.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def merge_documents(documents: Sequence[Mapping[str, Any]]) -> RecipeDocument:
    """Fold documents left to right; later documents take precedence."""

    merged: RecipeDocument = {}
    for doc in documents:
        merged = deep_merge(merged, doc)
    return merged


def load_recipes(references: Sequence[str], recipes_dir: str | Path) -> RecipeDocument:
    """Resolve, load and merge recipe references in order."""

    if not references:
        raise ValueError("At least one recipe reference is required")

    documents: list[RecipeDocument] = []
    for ref in references:
        path = resolve_recipe(ref, recipes_dir)
        logger.info("Loaded recipe", extra={"reference": ref, "path": str(path)})
        documents.append(load_recipe(path))

    return merge_documents(documents)
