"""GitHub host operations used while provisioning.

Wraps PyGithub for repository lookup/creation and Actions secrets, and uses a
plain `requests` session for the branch-protection endpoint, which needs the
full REST payload. All GitHub calls live here so the workflow can be tested
with a fake host.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import requests
from github import Auth, BadCredentialsException, Github, GithubException, UnknownObjectException

from repo_scaffold.scaffold.errors import (
    AuthenticationFailure,
    ProtectionApplyFailure,
    RepositoryAlreadyExists,
    RepositoryCreationFailure,
    SecretInjectionFailure,
)
from repo_scaffold.scaffold.models import ProtectionConfig
from repo_scaffold.scaffold.secrets import SecretProvider

logger = logging.getLogger(__name__)

GithubFactory = Callable[[str, str], Github]


def _default_github_factory(token: str, base_url: str) -> Github:
    return Github(auth=Auth.Token(token), base_url=base_url)


def protection_payload(policy: ProtectionConfig, *, approvals: int) -> dict[str, Any]:
    """Request body for `PUT /repos/{owner}/{repo}/branches/{branch}/protection`."""

    return {
        "required_status_checks": {
            "strict": policy.strict,
            "contexts": list(policy.contexts),
        },
        "enforce_admins": policy.enforce_admins,
        "required_pull_request_reviews": {
            "dismiss_stale_reviews": policy.dismiss_stale_reviews,
            "required_approving_review_count": approvals,
        },
        "restrictions": None,
    }


def _error_message(e: GithubException) -> str:
    data = e.data if isinstance(e.data, dict) else {}
    message = data.get("message") or str(e)
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        details = "; ".join(
            str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
        )
        return f"{e.status} {message}: {details}"
    return f"{e.status} {message}"


class HostClient(Protocol):
    """The version-control host as seen by the provisioning workflow."""

    @property
    def token(self) -> str: ...

    def is_authenticated(self) -> bool: ...

    def login(self) -> None: ...

    def repository_exists(self, full_name: str) -> bool: ...

    def create_repository(
        self, *, owner: str, name: str, private: bool, template: str | None = None
    ) -> None: ...

    def clone_url(self, full_name: str) -> str: ...

    def set_secret(self, full_name: str, name: str, value: str) -> None: ...

    def protect_branch(
        self, *, full_name: str, branch: str, policy: ProtectionConfig, approvals: int
    ) -> None: ...


class GitHubHost:
    """GitHub implementation of `HostClient`.

    The token is read from `token_env` in the environment. When it is missing
    or rejected, `login()` prompts for a new one through the secret provider.
    """

    def __init__(
        self,
        *,
        secrets: SecretProvider,
        token_env: str = "GITHUB_TOKEN",
        base_url: str = "https://api.github.com",
        web_url: str = "https://github.com",
        environ: Mapping[str, str] | None = None,
        github_factory: GithubFactory = _default_github_factory,
        session: requests.Session | None = None,
    ) -> None:
        self._secrets = secrets
        self._token_env = token_env
        self._rest_base_url = base_url.rstrip("/")
        self._web_url = web_url.rstrip("/")
        self._environ = os.environ if environ is None else environ
        self._github_factory = github_factory
        self._session = session or requests.Session()
        self._github: Github | None = None
        self._token = ""

    @property
    def token(self) -> str:
        return self._token

    def _connect(self, token: str) -> Github:
        if self._github is not None:
            self._github.close()
        self._token = token
        self._github = self._github_factory(token, self._rest_base_url)
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "repo-scaffold",
            }
        )
        return self._github

    def _require_github(self) -> Github:
        if self._github is None:
            raise AuthenticationFailure("Not connected to GitHub; authentication has not run")
        return self._github

    def is_authenticated(self) -> bool:
        token = self._environ.get(self._token_env, "")
        if not token:
            logger.info("No GitHub token in environment", extra={"env": self._token_env})
            return False

        gh = self._connect(token)
        try:
            login = gh.get_user().login
        except BadCredentialsException:
            logger.warning("GitHub rejected the token", extra={"env": self._token_env})
            return False
        except GithubException as e:
            raise AuthenticationFailure(f"GitHub auth check failed: {_error_message(e)}") from e

        logger.info("Authenticated with GitHub", extra={"login": login})
        return True

    def login(self) -> None:
        token = self._secrets.prompt(self._token_env)
        if not token.strip():
            raise AuthenticationFailure(f"{self._token_env} is empty")
        self._connect(token.strip())
        logger.info("Using prompted GitHub token", extra={"env": self._token_env})

    def repository_exists(self, full_name: str) -> bool:
        gh = self._require_github()
        try:
            gh.get_repo(full_name)
        except UnknownObjectException:
            return False
        except BadCredentialsException as e:
            raise AuthenticationFailure(f"GitHub rejected the token: {_error_message(e)}") from e
        except GithubException as e:
            raise RepositoryCreationFailure(
                f"Could not look up {full_name}: {_error_message(e)}"
            ) from e
        return True

    def create_repository(
        self, *, owner: str, name: str, private: bool, template: str | None = None
    ) -> None:
        gh = self._require_github()
        full_name = f"{owner}/{name}"
        try:
            viewer = gh.get_user()
            target = viewer if viewer.login == owner else gh.get_organization(owner)
            if template:
                template_repo = gh.get_repo(template)
                target.create_repo_from_template(name, template_repo, private=private)
            else:
                target.create_repo(name, private=private)
        except GithubException as e:
            message = _error_message(e)
            if e.status == 422 and "already exists" in message.lower():
                raise RepositoryAlreadyExists(full_name) from e
            raise RepositoryCreationFailure(f"Could not create {full_name}: {message}") from e

        logger.info(
            "Created repository",
            extra={"repo": full_name, "private": private, "template": template},
        )

    def clone_url(self, full_name: str) -> str:
        return f"{self._web_url}/{full_name}.git"

    def set_secret(self, full_name: str, name: str, value: str) -> None:
        gh = self._require_github()
        try:
            gh.get_repo(full_name).create_secret(name, value)
        except GithubException as e:
            raise SecretInjectionFailure(
                f"Could not set secret {name} on {full_name}: {_error_message(e)}"
            ) from e
        logger.info("Set repository secret", extra={"repo": full_name, "secret": name})

    def protect_branch(
        self, *, full_name: str, branch: str, policy: ProtectionConfig, approvals: int
    ) -> None:
        self._require_github()
        url = f"{self._rest_base_url}/repos/{full_name}/branches/{branch}/protection"
        body = protection_payload(policy, approvals=approvals)
        resp = self._session.put(url, json=body, timeout=30)
        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = {"message": resp.text}
            message = payload.get("message", payload) if isinstance(payload, dict) else payload
            raise ProtectionApplyFailure(
                f"Could not protect {full_name}@{branch}: {resp.status_code} {message}"
            )
        logger.info(
            "Applied branch protection",
            extra={"repo": full_name, "branch": branch, "approvals": approvals},
        )

    def close(self) -> None:
        self._session.close()
        if self._github is not None:
            self._github.close()
