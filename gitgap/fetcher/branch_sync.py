# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Prepares the shared checkout for a gap check and captures commit log snapshots.
"""

from typing import List

import bittensor as bt

from gitgap.exceptions import EnvironmentPreparationError, LogRetrievalError
from gitgap.fetcher.gap import parse_log
from gitgap.utils.git_tools import Workspace


class BranchSyncDriver:
    """Runs the git steps of a gap check in one workspace."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self.runner = workspace.runner

    def prepare_master_env(self) -> None:
        """Checkout the base branch and rebase it onto the upstream one. Raises EnvironmentPreparationError."""
        base = self.workspace.base_branch
        remote = self.workspace.remote

        with self.workspace.lock:
            self.runner.check('checkout', base, action=f"checkout {base}")
            self.runner.check('fetch', remote, base, action=f"git fetch {remote} {base}")
            self.runner.check('rebase', self.workspace.upstream_base, action=f"git rebase {self.workspace.upstream_base}")

    def get_log_info(self, ref: str) -> List[str]:
        """Capture the one-line log of `ref`, most recent commit first."""
        result = self.runner.check(
            'log',
            '--oneline',
            '--no-decorate',
            '--no-color',
            ref,
            '--',
            action=f"get {ref} log",
            error_cls=LogRetrievalError,
        )
        snapshot = parse_log(result.stdout)
        if not snapshot:
            raise LogRetrievalError(f"empty log for {ref}, the branch environment was not prepared")
        return snapshot

    def prepare_pr_branch_env(self, pr_number: int) -> None:
        """Pull the head of a pull request into its scratch branch.

        On failure the conflict recovery runs first, then the preparation
        error is raised for this pull request.
        """
        scratch = self.workspace.scratch_branch(pr_number)
        try:
            self.runner.check(
                'pull',
                '--no-rebase',
                '--no-edit',
                self.workspace.remote,
                f"pull/{pr_number}/head:{scratch}",
                action=f"pull pr {pr_number}",
            )
        except EnvironmentPreparationError as e:
            bt.logging.warning(f"PR #{pr_number}: {e}, running conflict recovery")
            try:
                self.handle_pr_conflict()
            except EnvironmentPreparationError as recovery_error:
                bt.logging.error(f"PR #{pr_number}: conflict recovery failed: {recovery_error}")
            raise EnvironmentPreparationError(f"failed to prepare pr branch: {e}") from e

    def handle_pr_conflict(self) -> None:
        """Drop the half-applied pull and bring the base branch back in line with upstream."""
        remote = self.workspace.remote
        base = self.workspace.base_branch

        self.runner.check('reset', '--hard', 'HEAD^', action="reset HEAD")
        self.runner.check('fetch', remote, base, action=f"git fetch {remote} {base}")
        self.runner.check('rebase', self.workspace.upstream_base, action=f"git rebase {self.workspace.upstream_base}")

    def collect_branch_log(self, pr_number: int) -> List[str]:
        """Prepare the scratch branch of a pull request and snapshot its log.

        Holds the workspace for the whole step; the base branch is restored
        however the step ends.
        """
        with self.workspace.session(pr_number):
            self.prepare_pr_branch_env(pr_number)
            bt.logging.info(f"prepare pr branch env done: pr {pr_number}")
            return self.get_log_info(self.workspace.scratch_branch(pr_number))
