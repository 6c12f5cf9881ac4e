# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Reflects a computed gap on the pull request: labels and a single gap comment.

Gap comments are recognised by the PR_GAP_SUBSTR marker they contain. This is a
substring heuristic; a human comment quoting the marker is treated as a gap
comment too.
"""

from typing import List

import bittensor as bt

from gitgap.classes import GapAction, IssueComment, PullRequest
from gitgap.constants import (
    APPROVED_LABEL,
    DEFAULT_BASE_BRANCH,
    DEFAULT_GAP_THRESHOLD,
    PR_GAP_COMMENT,
    PR_GAP_LABEL,
    PR_GAP_SUBSTR,
)
from gitgap.exceptions import GitHubAPIError
from gitgap.utils.logging import log_event


def is_gap_comment(body: str) -> bool:
    return PR_GAP_SUBSTR in (body or '')


def render_gap_comment(author: str, gap: int, base_branch: str = DEFAULT_BASE_BRANCH) -> str:
    return PR_GAP_COMMENT.format(author=author, gap=gap, base_branch=base_branch)


class GapReconciler:
    """Makes a pull request's gap label and gap comment match its computed gap.

    Only acts when the gap reaches the threshold. A pull request that later
    catches up keeps its label and comment.
    """

    def __init__(
        self,
        client,
        gap_threshold: int = DEFAULT_GAP_THRESHOLD,
        gap_label: str = PR_GAP_LABEL,
        approved_label: str = APPROVED_LABEL,
        base_branch: str = DEFAULT_BASE_BRANCH,
    ):
        self.client = client
        self.gap_threshold = gap_threshold
        self.gap_label = gap_label
        self.approved_label = approved_label
        self.base_branch = base_branch

    def reconcile(self, pr: PullRequest, gap: int) -> List[GapAction]:
        """
        Update labels and comments of a pull request for its gap.

        Args:
            pr (PullRequest): The pull request, freshly read from GitHub
            gap (int): Commits the pull request lags behind the base branch

        Returns:
            List[GapAction]: Mutations performed, empty when nothing changed
        """
        if gap < self.gap_threshold:
            return []

        bt.logging.info(f"PR #{pr.number}: found gap {gap}")
        actions: List[GapAction] = []

        # a large gap invalidates an earlier approval
        if self.client.issue_has_label(pr.number, self.approved_label):
            self.client.remove_label(pr.number, self.approved_label)
            actions.append(GapAction.APPROVAL_REMOVED)
            log_event(f"PR #{pr.number}: removed {self.approved_label} (gap {gap})")

        if not self.client.issue_has_label(pr.number, self.gap_label):
            self.client.add_labels(pr.number, [self.gap_label])
            actions.append(GapAction.LABEL_ADDED)
            log_event(f"PR #{pr.number}: added {self.gap_label} (gap {gap})")

        actions.extend(self.add_gap_comment(pr, gap))
        return actions

    def add_gap_comment(self, pr: PullRequest, gap: int) -> List[GapAction]:
        """Leave exactly one gap comment on the pull request, posting a new one only when needed."""
        if not pr.author_login:
            bt.logging.info(f"failed to get user from PR {pr.number}: empty User")
            return []

        comments = self.client.list_comments(pr.number)
        body = render_gap_comment(pr.author_login, gap, self.base_branch)

        if not comments:
            self._post(pr, body, gap)
            return [GapAction.COMMENT_POSTED]

        latest = comments[-1]
        if is_gap_comment(latest.body):
            # the latest comment already reports the gap; drop older copies only
            actions = self._remove_gap_comments(pr, comments[:-1])
            actions.append(GapAction.COMMENT_KEPT)
            return actions

        actions = self._remove_gap_comments(pr, comments)
        self._post(pr, body, gap)
        actions.append(GapAction.COMMENT_POSTED)
        return actions

    def _post(self, pr: PullRequest, body: str, gap: int) -> None:
        self.client.add_comment(pr.number, body)
        log_event(f"PR #{pr.number}: posted gap comment (gap {gap})")

    def _remove_gap_comments(self, pr: PullRequest, comments: List[IssueComment]) -> List[GapAction]:
        actions = []
        for comment in comments:
            if not is_gap_comment(comment.body):
                continue
            try:
                self.client.remove_comment(comment.id)
            except GitHubAPIError as e:
                bt.logging.warning(f"PR #{pr.number}: failed to remove gap comment {comment.id}: {e}")
                continue
            actions.append(GapAction.COMMENT_REMOVED)
            log_event(f"PR #{pr.number}: removed stale gap comment {comment.id}")
        return actions
