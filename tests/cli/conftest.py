# The MIT License (MIT)
# Copyright © 2025 Entrius

"""Shared fixtures for CLI tests."""

import importlib

import pytest
from click.testing import CliRunner

from gitgap.utils.config import GapCheckConfig


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point the CLI config file at a temporary directory."""
    # gitgap.cli re-exports main(), which shadows the module attribute
    cli_main = importlib.import_module('gitgap.cli.main')
    gitgap_dir = tmp_path / '.gitgap'
    monkeypatch.setattr(cli_main, 'GITGAP_DIR', gitgap_dir)
    monkeypatch.setattr(cli_main, 'CONFIG_FILE', gitgap_dir / 'config.json')
    for name in ('GITHUB_TOKEN', 'GITGAP_GITHUB_TOKEN', 'GITGAP_REPOSITORY', 'GITGAP_GAP_THRESHOLD'):
        monkeypatch.delenv(name, raising=False)
    return gitgap_dir


@pytest.fixture
def valid_config():
    return GapCheckConfig(repository='alibaba/pouch', github_token='ghp_test', gap_threshold=20)
