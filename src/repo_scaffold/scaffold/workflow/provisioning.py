"""The fixed provisioning workflow.

Stages run strictly in order and the first failure aborts the run. Nothing is
rolled back: re-running the command is the recovery path, and stages that
already took effect (a created remote repository) fail loudly on the re-run.

Secret injection runs after the repository is created because GitHub's secret
API needs the repository to exist.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from repo_scaffold.scaffold.errors import (
    AuthenticationFailure,
    BranchCreationFailure,
    BranchPushFailure,
    CommandError,
    GeneratorSynthesisFailure,
    LocalInitFailure,
    RepositoryAlreadyExists,
    RepositoryCreationFailure,
    SeedCommitFailure,
    SeedCopyFailure,
)
from repo_scaffold.scaffold.generator import ProjectGenerator
from repo_scaffold.scaffold.git import VcsClient, auth_env
from repo_scaffold.scaffold.github.client import HostClient
from repo_scaffold.scaffold.models import EffectiveConfig
from repo_scaffold.scaffold.secrets import SecretProvider
from repo_scaffold.scaffold.target import ExecutionContext
from repo_scaffold.scaffold.workflow.stages import Stage, StageTracker, Step, run_steps

logger = logging.getLogger(__name__)

INITIAL_COMMIT_MESSAGE = "chore: initial commit"
SYNTH_COMMIT_MESSAGE = "chore: synth project via projen"


class Provisioner:
    """Runs the provisioning stages for one ExecutionContext."""

    def __init__(
        self,
        *,
        config: EffectiveConfig,
        context: ExecutionContext,
        host: HostClient,
        vcs: VcsClient,
        generator: ProjectGenerator,
        secrets: SecretProvider,
        seed_root: Path,
        secrets_file: Path | None = None,
        web_url: str = "https://github.com",
    ) -> None:
        self.config = config
        self.context = context
        self._host = host
        self._vcs = vcs
        self._generator = generator
        self._secret_provider = secrets
        self._seed_root = seed_root
        self._secrets_file = secrets_file
        self._web_url = web_url

    @property
    def _default_branch(self) -> str:
        return self.config.github.branches.default

    @property
    def _integration_branch(self) -> str:
        return self.config.github.branches.integration

    def steps(self) -> list[Step]:
        return [
            Step(Stage.CHECKING_AUTH, self.check_auth),
            Step(Stage.CREATING_OR_CLONING_REPO, self.create_or_init),
            Step(Stage.INJECTING_SECRETS, self.inject_secrets),
            Step(Stage.SEEDING, self.seed),
            Step(Stage.CREATING_INTEGRATION_BRANCH, self.create_integration_branch),
            Step(Stage.APPLYING_BRANCH_PROTECTION, self.apply_protection),
            Step(Stage.RUNNING_GENERATOR_SYNTHESIS, self.synthesize),
        ]

    def run(self, *, tracker: StageTracker | None = None) -> None:
        run_steps(self.steps(), tracker=tracker)

    def check_auth(self) -> None:
        if not self._host.is_authenticated():
            try:
                self._host.login()
            except AuthenticationFailure:
                raise
            except Exception as e:
                raise AuthenticationFailure(f"GitHub login failed: {e}") from e

        if self._host.token:
            self._vcs.set_auth(auth_env(token=self._host.token, web_url=self._web_url))

    def create_or_init(self) -> None:
        ctx = self.context
        if ctx.is_remote:
            self._create_remote()
        else:
            self._init_local()
        self._exclude_secrets_file()

    def _init_local(self) -> None:
        workdir = self.context.workdir
        try:
            workdir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalInitFailure(f"Could not create {workdir}: {e}") from e

        if self._vcs.is_initialized():
            logger.info("Working directory already a git repository", extra={"path": str(workdir)})
            return
        try:
            self._vcs.init()
        except CommandError as e:
            raise LocalInitFailure(str(e)) from e
        logger.info("Initialized git repository", extra={"path": str(workdir)})

    def _create_remote(self) -> None:
        ctx = self.context
        full_name = ctx.full_name
        if self._host.repository_exists(full_name):
            raise RepositoryAlreadyExists(full_name)

        self._host.create_repository(
            owner=ctx.owner,
            name=ctx.repo_name,
            private=self.config.github.visibility == "private",
            template=self.config.source.repo,
        )
        try:
            self._vcs.clone(self._host.clone_url(full_name))
        except CommandError as e:
            raise RepositoryCreationFailure(f"Created {full_name} but clone failed: {e}") from e
        logger.info("Cloned repository", extra={"repo": full_name, "path": str(ctx.workdir)})

    def _exclude_secrets_file(self) -> None:
        if self._secrets_file is None:
            return
        secrets_path = self._secrets_file.resolve()
        workdir = self.context.workdir.resolve()
        if secrets_path.is_relative_to(workdir):
            self._vcs.exclude(secrets_path.relative_to(workdir).as_posix())

    def inject_secrets(self) -> None:
        ctx = self.context
        names = []
        for descriptor in self.config.github.secrets:
            value = self._secret_provider.obtain(descriptor.from_env)
            names.append(descriptor.name)
            if ctx.is_remote:
                self._host.set_secret(ctx.full_name, descriptor.name, value)

        if names and not ctx.is_remote:
            logger.info(
                "Local target: secrets obtained but not uploaded", extra={"secrets": names}
            )

    def seed(self) -> None:
        source_dir = self.config.source.dir
        if not source_dir:
            logger.info("No source.dir configured; skipping seed")
            return

        src = (self._seed_root / source_dir).resolve()
        workdir = self.context.workdir
        if not src.is_dir():
            raise SeedCopyFailure(f"Seed directory not found: {src}")
        # An existing local history keeps its checked-out branch.
        if self.context.is_remote or not self._vcs.has_commits():
            try:
                self._vcs.switch_default_branch(self._default_branch)
            except CommandError as e:
                raise SeedCommitFailure(str(e)) from e
        try:
            shutil.copytree(
                src, workdir, dirs_exist_ok=True, ignore=shutil.ignore_patterns(".git")
            )
        except OSError as e:
            raise SeedCopyFailure(f"Could not copy {src} into {workdir}: {e}") from e

        try:
            self._vcs.add_all()
            if not self._vcs.has_staged_changes():
                logger.info("Seed produced no changes; nothing to commit")
                return
            self._vcs.commit(f"chore: seed from {source_dir}")
        except CommandError as e:
            raise SeedCommitFailure(str(e)) from e

        if self.context.is_remote:
            try:
                self._vcs.push(self._default_branch)
            except CommandError as e:
                raise SeedCommitFailure(f"Could not push seed commit: {e}") from e

    def create_integration_branch(self) -> None:
        remote = self.context.is_remote
        branch = self._integration_branch

        # A branch with no commits cannot be pushed; start the history first.
        needs_initial_commit = remote and not self._vcs.has_commits()
        if needs_initial_commit:
            try:
                self._vcs.switch_default_branch(self._default_branch)
                self._vcs.commit(INITIAL_COMMIT_MESSAGE, allow_empty=True)
            except CommandError as e:
                raise BranchCreationFailure(str(e)) from e
            try:
                self._vcs.push(self._default_branch)
            except CommandError as e:
                raise BranchPushFailure(str(e)) from e

        try:
            self._vcs.checkout_new_branch(branch)
        except CommandError as e:
            raise BranchCreationFailure(str(e)) from e

        if remote:
            try:
                self._vcs.push(branch, set_upstream=True)
            except CommandError as e:
                raise BranchPushFailure(str(e)) from e
        logger.info("Created integration branch", extra={"branch": branch, "pushed": remote})

    def apply_protection(self) -> None:
        policy = self.config.github.protection
        if policy is None:
            logger.info("No github.protection configured; skipping")
            return
        if not self.context.is_remote:
            logger.info("Local target: branch protection not applied")
            return

        for branch in (self._integration_branch, self._default_branch):
            self._host.protect_branch(
                full_name=self.context.full_name,
                branch=branch,
                policy=policy,
                approvals=policy.approvals_for(branch),
            )

    def synthesize(self) -> None:
        project = self.config.project
        if project is None:
            logger.info("No project configured; skipping synthesis")
            return

        workdir = self.context.workdir
        self._generator.synthesize(project, workdir, default_name=self.context.repo_name)
        try:
            self._vcs.add_all()
            if not self._vcs.has_staged_changes():
                logger.info("Synthesis produced no changes; nothing to commit")
                return
            self._vcs.commit(SYNTH_COMMIT_MESSAGE)
            if self.context.is_remote:
                self._vcs.push(self._integration_branch)
        except CommandError as e:
            raise GeneratorSynthesisFailure(str(e)) from e
