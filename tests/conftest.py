# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Shared fixtures for gitgap tests.

Provides in-memory stand-ins for the two external collaborators of a gap
check: the GitHub issue/PR client and the git command runner.

Usage:
    def test_something(client_factory, pr_factory):
        pr = pr_factory(number=7)
        client = client_factory(prs=[pr])
        ...
"""

import hashlib
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from gitgap.classes import IssueComment, PullRequest
from gitgap.exceptions import GitHubAPIError
from gitgap.utils.git_tools import CommandResult, GitRunner

START_COMMIT = 'a1b2c3d4e5f60718293a4b5c6d7e8f9012345678'


class FakeGitHubClient:
    """Stateful in-memory GitHub client that records every call."""

    def __init__(
        self,
        prs: Optional[List[PullRequest]] = None,
        labels: Optional[Dict[int, Iterable[str]]] = None,
        comments: Optional[Dict[int, List[IssueComment]]] = None,
        failing_comment_ids: Iterable[int] = (),
    ):
        self.prs = {pr.number: pr for pr in prs or []}
        self.labels = {number: set(names) for number, names in (labels or {}).items()}
        self.comments = {number: list(items) for number, items in (comments or {}).items()}
        self.failing_comment_ids = set(failing_comment_ids)
        self.calls = []
        self._next_comment_id = 1000

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def list_open_pull_requests(self) -> List[PullRequest]:
        self.calls.append(('list_open_pull_requests',))
        return list(self.prs.values())

    def get_pull_request(self, number: int) -> PullRequest:
        self.calls.append(('get_pull_request', number))
        if number not in self.prs:
            raise GitHubAPIError(f'PR #{number} not found', status_code=404)
        return self.prs[number]

    def issue_has_label(self, number: int, label: str) -> bool:
        self.calls.append(('issue_has_label', number, label))
        return label in self.labels.get(number, set())

    def add_labels(self, number: int, labels: List[str]) -> None:
        self.calls.append(('add_labels', number, list(labels)))
        self.labels.setdefault(number, set()).update(labels)

    def remove_label(self, number: int, label: str) -> None:
        self.calls.append(('remove_label', number, label))
        self.labels.get(number, set()).discard(label)

    def list_comments(self, number: int) -> List[IssueComment]:
        self.calls.append(('list_comments', number))
        return list(self.comments.get(number, []))

    def add_comment(self, number: int, body: str) -> IssueComment:
        self.calls.append(('add_comment', number, body))
        comment = IssueComment(id=self._next_comment_id, body=body, author_login='gitgap-bot')
        self._next_comment_id += 1
        self.comments.setdefault(number, []).append(comment)
        return comment

    def remove_comment(self, comment_id: int) -> None:
        self.calls.append(('remove_comment', comment_id))
        if comment_id in self.failing_comment_ids:
            raise GitHubAPIError(f'failed to delete comment {comment_id}', status_code=500)
        for number, items in self.comments.items():
            self.comments[number] = [c for c in items if c.id != comment_id]


class FakeRunner(GitRunner):
    """GitRunner that records commands instead of running them.

    `logs` maps a ref to the `git log --oneline` text returned for it. A
    command fails when its subcommand or any of its arguments is listed in
    `failures`.
    """

    def __init__(
        self,
        logs: Optional[Dict[str, str]] = None,
        failures: Iterable[str] = (),
        head: str = START_COMMIT,
    ):
        super().__init__('/tmp/fake-checkout')
        self.logs = logs or {}
        self.failures = set(failures)
        self.head = head
        self.commands: List[List[str]] = []

    def run(self, *args: str) -> CommandResult:
        self.commands.append(list(args))
        cmd = ['git', *args]
        if any(arg in self.failures for arg in args):
            return CommandResult(args=cmd, exit_status=1, stderr=f'fatal: {args[0]} failed')
        if args[0] == 'log':
            ref = args[4]
            return CommandResult(args=cmd, exit_status=0, stdout=self.logs.get(ref, ''))
        if args[0] == 'rev-parse':
            return CommandResult(args=cmd, exit_status=0, stdout=f'{self.head}\n')
        return CommandResult(args=cmd, exit_status=0)

    def subcommands(self) -> List[str]:
        return [command[0] for command in self.commands]


def oneline(*subjects: str) -> str:
    """Build `git log --oneline` text with a stable fake hash per subject."""
    return ''.join(f'{hashlib.sha1(subject.encode()).hexdigest()[:7]} {subject}\n' for subject in subjects)


@pytest.fixture
def log_text() -> Callable[..., str]:
    return oneline


@pytest.fixture
def client_factory() -> Callable[..., FakeGitHubClient]:
    return FakeGitHubClient


@pytest.fixture
def runner_factory() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def pr_factory() -> Callable[..., PullRequest]:
    def _make(number: int = 1, author_login: Optional[str] = 'alice', labels: Iterable[str] = (), **kwargs):
        return PullRequest(number=number, author_login=author_login, labels=set(labels), **kwargs)

    return _make


@pytest.fixture
def comment_factory() -> Callable[..., IssueComment]:
    counter = {'next': 1}

    def _make(body: str, author_login: str = 'bob', comment_id: Optional[int] = None):
        if comment_id is None:
            comment_id = counter['next']
            counter['next'] += 1
        return IssueComment(id=comment_id, body=body, author_login=author_login)

    return _make
