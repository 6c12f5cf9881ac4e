# Entrius 2025
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

import bittensor as bt
import requests

from gitgap.classes import IssueComment, PullRequest
from gitgap.constants import (
    BASE_GITHUB_API_URL,
    GITHUB_API_MAX_ATTEMPTS,
    GITHUB_API_TIMEOUT,
    GITHUB_PAGE_SIZE,
)
from gitgap.exceptions import GitHubAPIError

# =============================================================================
# Rate limits
# =============================================================================
RATE_LIMIT_BUFFER_SECONDS = 5  # added to the reset time before retrying
RATE_LIMIT_LOW_WATERMARK = 10  # remaining requests that trigger a warning
RATE_LIMIT_MAX_WAIT_SECONDS = 900  # 15 minutes
SECONDARY_RATE_LIMIT_WAIT_SECONDS = 60


@dataclass
class RateLimitInfo:
    """X-RateLimit-* values of one response."""

    limit: int
    remaining: int
    reset_timestamp: int  # unix seconds
    used: int

    @property
    def is_exceeded(self) -> bool:
        return self.remaining == 0

    @property
    def seconds_until_reset(self) -> int:
        return max(0, self.reset_timestamp - int(time.time()))

    def __str__(self) -> str:
        return f"RateLimit(remaining={self.remaining}/{self.limit}, resets_in={self.seconds_until_reset}s)"


def parse_rate_limit_headers(response: requests.Response) -> Optional[RateLimitInfo]:
    """Read the rate limit headers of a response; None when GitHub sent none."""
    headers = response.headers
    try:
        info = RateLimitInfo(
            limit=int(headers.get('X-RateLimit-Limit', 0)),
            remaining=int(headers.get('X-RateLimit-Remaining', 0)),
            reset_timestamp=int(headers.get('X-RateLimit-Reset', 0)),
            used=int(headers.get('X-RateLimit-Used', 0)),
        )
    except (TypeError, ValueError) as e:
        bt.logging.debug(f"Unparseable rate limit headers: {e}")
        return None

    if info.limit == 0 and info.reset_timestamp == 0:
        return None
    return info


def _capped_wait(seconds: int) -> int:
    return min(seconds + RATE_LIMIT_BUFFER_SECONDS, RATE_LIMIT_MAX_WAIT_SECONDS)


def is_rate_limited(response: requests.Response) -> Tuple[bool, Optional[int]]:
    """
    Tell whether a response is a rate limit rejection.

    Args:
        response (requests.Response): Response from the GitHub API

    Returns:
        Tuple[bool, Optional[int]]: (rate limited, seconds to wait before retrying)
    """
    if response.status_code not in (403, 429):
        return False, None

    info = parse_rate_limit_headers(response)
    if info and info.is_exceeded:
        return True, _capped_wait(info.seconds_until_reset)

    # secondary limits only say so in the body
    if 'rate limit' not in response.text.lower():
        return False, None
    if info:
        return True, _capped_wait(info.seconds_until_reset)
    return True, SECONDARY_RATE_LIMIT_WAIT_SECONDS


def check_preemptive_rate_limit(response: requests.Response) -> None:
    """Warn when a successful response shows the quota is nearly spent."""
    info = parse_rate_limit_headers(response)
    if info is None:
        return

    if info.remaining <= RATE_LIMIT_LOW_WATERMARK:
        bt.logging.warning(f"GitHub API quota nearly exhausted: {info}")
    elif info.remaining <= info.limit * 0.1:
        bt.logging.info(f"GitHub API quota: {info}")


def wait_for_rate_limit_reset(wait_seconds: int, context: str = "") -> None:
    """Sleep until the rate limit window resets, logging progress once a minute."""
    suffix = f" ({context})" if context else ""
    bt.logging.warning(f"GitHub API rate limit hit{suffix}, waiting {wait_seconds}s")

    waited = 0
    while waited < wait_seconds:
        step = min(60, wait_seconds - waited)
        time.sleep(step)
        waited += step
        if waited < wait_seconds:
            bt.logging.info(f"Rate limit wait: {waited}s of {wait_seconds}s")

    bt.logging.info("Rate limit wait over, resuming GitHub requests")


def make_headers(token: str) -> Dict[str, str]:
    """Authorization and media type headers for a personal access token."""
    return {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3+json",
    }


class GitHubClient:
    """Issue and pull request operations for one repository, on the GitHub REST API.

    Every call retries transient failures (connection errors, 5xx) with
    exponential backoff and waits out primary rate limits. A call that still
    fails raises GitHubAPIError; callers decide whether that is fatal.
    """

    def __init__(
        self,
        repository: str,
        token: str,
        base_url: str = BASE_GITHUB_API_URL,
        max_attempts: int = GITHUB_API_MAX_ATTEMPTS,
        timeout: int = GITHUB_API_TIMEOUT,
    ):
        self.repository = repository
        self.base_url = base_url.rstrip('/')
        self.max_attempts = max_attempts
        self.timeout = timeout
        self._headers = make_headers(token)

    def _url(self, path: str) -> str:
        if path.startswith('http'):
            return path
        return f"{self.base_url}{path}"

    def _request(
        self,
        method: str,
        path: str,
        expected: Iterable[int] = (200,),
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Send one request, retrying until an expected status is returned.

        Args:
            method (str): HTTP method
            path (str): API path below the base url, or an absolute url (pagination links)
            expected (Iterable[int]): Status codes that count as success
            params (Optional[Dict[str, Any]]): Query string parameters
            json (Optional[Dict[str, Any]]): JSON body

        Returns:
            requests.Response: The successful response

        Raises:
            GitHubAPIError: If no attempt returned an expected status
        """
        url = self._url(path)
        context = f"{method} {path}"
        status_code: Optional[int] = None
        last_error = "no attempt made"

        for attempt in range(self.max_attempts):
            is_last = attempt == self.max_attempts - 1
            try:
                response = requests.request(
                    method, url, headers=self._headers, params=params, json=json, timeout=self.timeout
                )
            except requests.exceptions.RequestException as e:
                last_error = str(e)
                if is_last:
                    break
                backoff_delay = 5 * (2**attempt)
                bt.logging.warning(
                    f"GitHub request {context} connection error (attempt {attempt + 1}/{self.max_attempts}): "
                    f"{e}, retrying in {backoff_delay}s..."
                )
                time.sleep(backoff_delay)
                continue

            status_code = response.status_code

            rate_limited, wait_seconds = is_rate_limited(response)
            if rate_limited and wait_seconds:
                last_error = "rate limit exceeded"
                if is_last:
                    break
                wait_for_rate_limit_reset(wait_seconds, context=context)
                continue

            if response.status_code in expected:
                check_preemptive_rate_limit(response)
                return response

            last_error = f"status {response.status_code}: {response.text}"
            if response.status_code < 500 or is_last:
                break

            # Exponential backoff: 5s, 10s, 20s...
            backoff_delay = 5 * (2**attempt)
            bt.logging.warning(
                f"GitHub request {context} failed with status {response.status_code} "
                f"(attempt {attempt + 1}/{self.max_attempts}), retrying in {backoff_delay}s..."
            )
            time.sleep(backoff_delay)

        bt.logging.error(f"GitHub request {context} failed: {last_error}")
        raise GitHubAPIError(f"GitHub request {context} failed: {last_error}", status_code=status_code)

    def _get_paginated(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Collect every page of a list endpoint by following the `next` links."""
        items: List[Dict[str, Any]] = []
        page_params = dict(params or {})
        page_params.setdefault('per_page', GITHUB_PAGE_SIZE)

        next_path: Optional[str] = path
        while next_path:
            response = self._request('GET', next_path, params=page_params)
            items.extend(response.json())
            next_path = response.links.get('next', {}).get('url')
            # The next link already carries the query string
            page_params = None
        return items

    def list_open_pull_requests(self) -> List[PullRequest]:
        prs = self._get_paginated(f"/repos/{self.repository}/pulls", params={'state': 'open'})
        bt.logging.info(f"Found {len(prs)} open pull requests in {self.repository}")
        return [PullRequest.from_github_response(pr) for pr in prs]

    def get_pull_request(self, number: int) -> PullRequest:
        response = self._request('GET', f"/repos/{self.repository}/pulls/{number}")
        return PullRequest.from_github_response(response.json())

    def issue_has_label(self, number: int, label: str) -> bool:
        labels = self._get_paginated(f"/repos/{self.repository}/issues/{number}/labels")
        return any(item.get('name') == label for item in labels)

    def add_labels(self, number: int, labels: List[str]) -> None:
        self._request('POST', f"/repos/{self.repository}/issues/{number}/labels", json={'labels': labels})
        bt.logging.info(f"PR #{number}: added labels {labels}")

    def remove_label(self, number: int, label: str) -> None:
        self._request('DELETE', f"/repos/{self.repository}/issues/{number}/labels/{quote(label, safe='')}")
        bt.logging.info(f"PR #{number}: removed label {label}")

    def list_comments(self, number: int) -> List[IssueComment]:
        comments = self._get_paginated(f"/repos/{self.repository}/issues/{number}/comments")
        return [IssueComment.from_github_response(comment) for comment in comments]

    def add_comment(self, number: int, body: str) -> IssueComment:
        response = self._request(
            'POST', f"/repos/{self.repository}/issues/{number}/comments", expected=(201,), json={'body': body}
        )
        bt.logging.info(f"PR #{number}: posted comment")
        return IssueComment.from_github_response(response.json())

    def remove_comment(self, comment_id: int) -> None:
        self._request('DELETE', f"/repos/{self.repository}/issues/comments/{comment_id}", expected=(204,))
        bt.logging.info(f"Removed comment {comment_id}")
