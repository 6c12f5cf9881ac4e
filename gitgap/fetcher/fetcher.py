# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Gap check over all open pull requests.

Pull requests are processed one at a time: they share one checkout. A failure
on one pull request is logged and the run moves on; only failing to list pull
requests or to prepare the base branch aborts the run.
"""

import time
from typing import List, Optional

import bittensor as bt

from gitgap.classes import GapCheckResult, PullRequest
from gitgap.fetcher.branch_sync import BranchSyncDriver
from gitgap.fetcher.gap import compute_gap
from gitgap.fetcher.reconcile import GapReconciler
from gitgap.utils.config import GapCheckConfig
from gitgap.utils.git_tools import Workspace
from gitgap.utils.github_api_tools import GitHubClient
from gitgap.utils.logging import log_gap_check_results


class Fetcher:
    """Checks the gap of every open pull request of a repository."""

    def __init__(self, client, driver: BranchSyncDriver, reconciler: GapReconciler):
        self.client = client
        self.driver = driver
        self.reconciler = reconciler

    def check_prs_gap(self) -> List[GapCheckResult]:
        """Check every open pull request; raises GapBotError when the run cannot start."""
        bt.logging.info("start to check PR's gap")
        prs = self.client.list_open_pull_requests()

        self.driver.prepare_master_env()
        bt.logging.info("prepare master env done")

        base_branch = self.driver.workspace.base_branch
        master_log = self.driver.get_log_info(base_branch)
        bt.logging.info(f"get log info of {base_branch} branch done ({len(master_log)} commits)")

        results = []
        for pr in prs:
            try:
                result = self.check_pr_gap(pr, master_log)
            except Exception as e:
                bt.logging.error(f"failed to check pull request {pr.number} gap: {e}")
                result = GapCheckResult(pr_number=pr.number, error=str(e))
            results.append(result)

        log_gap_check_results(results, self.reconciler.gap_threshold)
        return results

    def check_pr_gap(self, pr: PullRequest, master_log: List[str]) -> GapCheckResult:
        bt.logging.info(f"start to check pr {pr.number}")
        pr = self.client.get_pull_request(pr.number)

        branch_log = self.driver.collect_branch_log(pr.number)
        bt.logging.info(f"get pr log info done: pr {pr.number}")

        gap = compute_gap(master_log, branch_log)
        bt.logging.info(f"PR #{pr.number}: the gap is {gap}")

        actions = self.reconciler.reconcile(pr, gap)
        return GapCheckResult(pr_number=pr.number, gap=gap, actions=actions)

    def run_forever(self, interval_seconds: int, max_cycles: Optional[int] = None) -> int:
        """Run gap checks every `interval_seconds`. Returns the number of cycles run."""
        bt.logging.info(f"Gap check loop started (interval {interval_seconds}s)")
        cycles = 0

        while max_cycles is None or cycles < max_cycles:
            try:
                self.check_prs_gap()
            except Exception as e:
                bt.logging.error(f"Gap check cycle failed: {e}")
            cycles += 1

            if max_cycles is not None and cycles >= max_cycles:
                break
            time.sleep(interval_seconds)

        bt.logging.info("Gap check loop stopped")
        return cycles


def build_fetcher(config: GapCheckConfig) -> Fetcher:
    """Wire a Fetcher for the configured repository and checkout."""
    client = GitHubClient(config.repository, config.github_token)
    workspace = Workspace(config.repo_path, remote=config.remote, base_branch=config.base_branch)
    reconciler = GapReconciler(
        client,
        gap_threshold=config.gap_threshold,
        gap_label=config.gap_label,
        approved_label=config.approved_label,
        base_branch=config.base_branch,
    )
    return Fetcher(client, BranchSyncDriver(workspace), reconciler)
