#!/usr/bin/env python3
# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Pytest configuration for utils tests.
"""

from unittest.mock import Mock

import pytest


@pytest.fixture
def make_response():
    """Build a mock requests.Response; no rate limit headers and no next page by default."""

    def _make(status_code=200, payload=None, text='', headers=None, links=None):
        response = Mock()
        response.status_code = status_code
        response.text = text
        response.headers = headers or {}
        response.links = links or {}
        response.json.return_value = payload
        return response

    return _make


@pytest.fixture
def github_client():
    from gitgap.utils.github_api_tools import GitHubClient

    return GitHubClient('alibaba/pouch', 'fake_github_token')
