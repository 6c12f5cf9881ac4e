# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Errors raised while checking the gap of pull requests.

Everything derives from GapBotError so the per-PR loop can tell a known
failure from a programming error.
"""

from typing import Optional


class GapBotError(Exception):
    """Base class for gap check failures."""


class EnvironmentPreparationError(GapBotError):
    """A git command preparing the working tree failed (checkout, fetch, rebase, pull, reset)."""


class LogRetrievalError(GapBotError):
    """A commit log snapshot could not be captured, or came back empty."""


class GitHubAPIError(GapBotError):
    """A GitHub API call failed after all retries."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
