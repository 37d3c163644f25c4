"""Recipe loading, target resolution and provisioning."""

from repo_scaffold.scaffold.config import ScaffoldSettings

__all__ = ["ScaffoldSettings"]
