"""Repo Scaffold.

Bootstraps GitHub repositories from declarative recipes:
- recipes loaded from YAML/JSON and deep-merged in order
- configuration loaded from `.env`
- structured logging
- a fixed, stage-labelled provisioning workflow
"""

__version__ = "0.1.0"

from repo_scaffold.scaffold.config import ScaffoldSettings

__all__ = ["__version__", "ScaffoldSettings"]
