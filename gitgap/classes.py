import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class GapAction(Enum):
    """Mutation performed on a pull request while reconciling its gap state"""

    APPROVAL_REMOVED = "approval_removed"
    LABEL_ADDED = "label_added"
    COMMENT_POSTED = "comment_posted"
    COMMENT_REMOVED = "comment_removed"
    COMMENT_KEPT = "comment_kept"


@dataclass
class PullRequest:
    """Minimal view of an open pull request, as read from GitHub.

    The issue tracker is the source of truth; instances are re-read on every
    check and never cached between runs.
    """

    number: int
    title: str = ''
    author_login: Optional[str] = None
    labels: Set[str] = field(default_factory=set)
    base_ref: Optional[str] = None
    head_ref: Optional[str] = None
    state: str = 'open'

    @classmethod
    def from_github_response(cls, pr_data: Dict[str, Any]) -> 'PullRequest':
        """Create PullRequest from a GitHub REST pull request object"""
        user = pr_data.get('user') or {}
        base = pr_data.get('base') or {}
        head = pr_data.get('head') or {}
        return cls(
            number=pr_data['number'],
            title=pr_data.get('title') or '',
            author_login=user.get('login'),
            labels={label['name'] for label in pr_data.get('labels') or [] if label.get('name')},
            base_ref=base.get('ref'),
            head_ref=head.get('ref'),
            state=pr_data.get('state') or 'open',
        )


@dataclass
class IssueComment:
    """A comment on the conversation tab of a pull request"""

    id: int
    body: str
    author_login: Optional[str] = None

    @classmethod
    def from_github_response(cls, comment_data: Dict[str, Any]) -> 'IssueComment':
        user = comment_data.get('user') or {}
        return cls(
            id=comment_data['id'],
            body=comment_data.get('body') or '',
            author_login=user.get('login'),
        )


@dataclass
class GapCheckResult:
    """Outcome of checking a single pull request"""

    pr_number: int
    gap: Optional[int] = None
    actions: List[GapAction] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.error:
            return f"GapCheckResult(pr={self.pr_number}, error={self.error})"
        actions = ', '.join(action.value for action in self.actions) or 'none'
        return f"GapCheckResult(pr={self.pr_number}, gap={self.gap}, actions={actions})"


@dataclass
class Webhook:
    """Build notification payload posted by the CI service.

    Not consumed by the gap check; parsed here so the bot's ingress can share
    the same model.
    """

    id: int
    number: str
    pull_request_number: int
    pull_request_title: str
    duration: int
    author_name: str
    author_email: str
    type: str
    state: str
    build_url: str

    @property
    def is_pull_request(self) -> bool:
        return self.type == 'pull_request'

    @property
    def passed(self) -> bool:
        return self.state == 'passed'

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Webhook':
        return cls(
            id=int(payload.get('id') or 0),
            number=str(payload.get('number') or ''),
            pull_request_number=int(payload.get('pull_request_number') or 0),
            pull_request_title=payload.get('pull_request_title') or '',
            duration=int(payload.get('duration') or 0),
            author_name=payload.get('author_name') or '',
            author_email=payload.get('author_email') or '',
            type=payload.get('type') or '',
            state=payload.get('state') or '',
            build_url=payload.get('build_url') or '',
        )

    @classmethod
    def from_json(cls, raw: str) -> 'Webhook':
        return cls.from_payload(json.loads(raw))
