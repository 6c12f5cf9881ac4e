# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Commit lag between the tracked base branch and a pull request branch.

Both logs are `git log --oneline` snapshots, most recent commit first. The
overlap test is a heuristic: a branch line counts as shared history when its
exact text occurs somewhere in the base branch log. It is an approximation of
a merge-base lookup, not a structural guarantee.
"""

from typing import List


def parse_log(text: str) -> List[str]:
    """Split `git log --oneline` output into a snapshot, dropping blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def compute_gap(master_log: List[str], branch_log: List[str]) -> int:
    """
    Estimate how many commits the base of a branch lags behind master.

    Scans the branch log from its most recent entry; the first entry k found in
    the master log text means the branch holds len(branch_log) - k commits of
    history from that point back. The gap is the master length minus that
    count. With no shared line the count stays 0 and the gap is len(master_log).
    The result is not clamped and can be negative.

    Args:
        master_log (List[str]): Master snapshot, most recent first
        branch_log (List[str]): Pull request branch snapshot, most recent first

    Returns:
        int: Estimated number of commits behind
    """
    master_text = '\n'.join(master_log)
    count = 0

    for k, line in enumerate(branch_log):
        # '' is contained in every string
        if line and line in master_text:
            count = len(branch_log) - k
            break

    return len(master_log) - count
