"""GitHub host integration."""

from repo_scaffold.scaffold.github.client import GitHubHost, HostClient

__all__ = ["GitHubHost", "HostClient"]
