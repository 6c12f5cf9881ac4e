# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Git command execution against the bot's working tree.

GitRunner never raises for a failing command: it returns a CommandResult and
lets the caller turn a failure into a typed error with `check`. Workspace wraps
a runner with a lock so only one pull request is prepared against the
checkout at a time, and restores the base branch when a session ends.
"""

import re
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Type

import bittensor as bt

from gitgap.constants import DEFAULT_BASE_BRANCH, DEFAULT_REMOTE, GIT_COMMAND_TIMEOUT, SCRATCH_BRANCH_PREFIX
from gitgap.exceptions import EnvironmentPreparationError, GapBotError

COMMIT_HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{7,40}$")


@dataclass
class CommandResult:
    """Exit status and output of one git invocation."""

    args: List[str]
    exit_status: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.exit_status == 0

    @property
    def combined_output(self) -> str:
        return '\n'.join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    @property
    def command(self) -> str:
        return ' '.join(self.args)


def validate_commit_hash(commit_hash: Optional[str]) -> bool:
    """
    Validate that a string is a git commit hash (7-40 hex characters).

    Args:
        commit_hash: The commit hash to validate

    Returns:
        True if valid, False otherwise
    """
    if not commit_hash:
        return False
    return bool(COMMIT_HASH_PATTERN.fullmatch(commit_hash))


class GitRunner:
    """Runs git subcommands in one repository."""

    def __init__(self, repo_path: str, timeout: int = GIT_COMMAND_TIMEOUT):
        self.repo_path = repo_path
        self.timeout = timeout

    def run(self, *args: str) -> CommandResult:
        """Run `git <args>` and return its result; a non-zero exit is not an exception."""
        cmd = ['git', *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            return CommandResult(args=cmd, exit_status=127, stderr=str(e))
        except subprocess.TimeoutExpired:
            return CommandResult(args=cmd, exit_status=124, stderr=f"timed out after {self.timeout}s")

        command_result = CommandResult(
            args=cmd, exit_status=result.returncode, stdout=result.stdout or '', stderr=result.stderr or ''
        )
        if command_result.ok:
            bt.logging.debug(f"git command succeeded: {command_result.command}")
        else:
            bt.logging.debug(f"git command failed ({command_result.exit_status}): {command_result.command}")
        return command_result

    def check(
        self,
        *args: str,
        action: Optional[str] = None,
        error_cls: Type[GapBotError] = EnvironmentPreparationError,
    ) -> CommandResult:
        """Run a git command and raise `error_cls` if it fails."""
        result = self.run(*args)
        if not result.ok:
            description = action or f"run {result.command}"
            raise error_cls(f"failed to {description}: {result.combined_output} (exit status {result.exit_status})")
        return result

    def rev_parse(self, ref: str) -> Optional[str]:
        result = self.run('rev-parse', '--verify', ref)
        return result.stdout.strip() if result.ok else None


class Workspace:
    """The local checkout the bot prepares pull requests in.

    The checkout is shared mutable state: two pull requests must never be
    prepared in it concurrently, so every session holds `lock`. Checking pull
    requests in parallel needs one Workspace (clone or worktree) per PR.
    """

    def __init__(
        self,
        path: str,
        remote: str = DEFAULT_REMOTE,
        base_branch: str = DEFAULT_BASE_BRANCH,
        runner: Optional[GitRunner] = None,
    ):
        self.path = path
        self.remote = remote
        self.base_branch = base_branch
        self.runner = runner or GitRunner(path)
        self.lock = threading.Lock()

    @property
    def upstream_base(self) -> str:
        return f"{self.remote}/{self.base_branch}"

    def scratch_branch(self, pr_number: int) -> str:
        return f"{SCRATCH_BRANCH_PREFIX}{pr_number}"

    @contextmanager
    def session(self, pr_number: int) -> Iterator['Workspace']:
        """Hold the checkout for one pull request and restore the base branch afterwards.

        The restore runs on every exit path, including when preparation fails
        or conflict recovery already ran.
        """
        with self.lock:
            start_commit = self.runner.rev_parse('HEAD')
            try:
                yield self
            finally:
                self._restore(start_commit, pr_number)

    def _restore(self, start_commit: Optional[str], pr_number: int) -> None:
        result = self.runner.run('checkout', '-f', self.base_branch)
        if not result.ok:
            bt.logging.warning(f"PR #{pr_number}: failed to checkout {self.base_branch}: {result.combined_output}")

        if validate_commit_hash(start_commit):
            result = self.runner.run('reset', '--hard', start_commit)
            if not result.ok:
                bt.logging.warning(
                    f"PR #{pr_number}: failed to reset {self.base_branch} to {start_commit[:8]}: "
                    f"{result.combined_output}"
                )
        else:
            bt.logging.warning(f"PR #{pr_number}: no valid starting commit recorded, skipping reset")

        scratch = self.scratch_branch(pr_number)
        result = self.runner.run('branch', '-D', scratch)
        if not result.ok:
            bt.logging.debug(f"PR #{pr_number}: scratch branch {scratch} not deleted: {result.combined_output}")
