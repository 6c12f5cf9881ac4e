import json
import os
import re
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import bittensor as bt

from gitgap.constants import (
    APPROVED_LABEL,
    DEFAULT_BASE_BRANCH,
    DEFAULT_CHECK_INTERVAL_SECONDS,
    DEFAULT_GAP_THRESHOLD,
    DEFAULT_REMOTE,
    PR_GAP_LABEL,
)
from gitgap.utils.logging import DEFAULT_EVENTS_RETENTION_SIZE
from gitgap.utils.utils import mask_secret

GITGAP_DIR = Path.home() / '.gitgap'
CONFIG_FILE = GITGAP_DIR / 'config.json'
REPO_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+/[a-zA-Z0-9._-]+$')

ENV_PREFIX = 'GITGAP_'
INT_FIELDS = ('gap_threshold', 'check_interval_seconds', 'events_retention_size')


@dataclass
class GapCheckConfig:
    """Configuration for the gap check."""

    repository: str = ''  # owner/repo
    github_token: Optional[str] = None
    repo_path: str = '.'
    remote: str = DEFAULT_REMOTE
    base_branch: str = DEFAULT_BASE_BRANCH
    gap_threshold: int = DEFAULT_GAP_THRESHOLD
    gap_label: str = PR_GAP_LABEL
    approved_label: str = APPROVED_LABEL
    check_interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS
    events_log_dir: Optional[str] = None
    events_retention_size: int = DEFAULT_EVENTS_RETENTION_SIZE

    def to_display_dict(self) -> Dict[str, Any]:
        """Config values safe for printing (token masked)."""
        values = asdict(self)
        if values.get('github_token'):
            values['github_token'] = mask_secret(values['github_token'])
        return values


def _coerce(key: str, value: Any) -> Any:
    if key in INT_FIELDS:
        return int(value)
    return value


def _apply(config: GapCheckConfig, values: Dict[str, Any], source: str) -> None:
    known = {f.name for f in fields(GapCheckConfig)}
    for key, value in values.items():
        if key not in known:
            bt.logging.warning(f"Ignoring unknown config key '{key}' from {source}")
            continue
        try:
            setattr(config, key, _coerce(key, value))
        except (TypeError, ValueError):
            bt.logging.warning(f"Invalid value for '{key}' from {source}: {value!r}, keeping {getattr(config, key)!r}")


def _env_values() -> Dict[str, str]:
    values = {}
    for f in fields(GapCheckConfig):
        raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw:
            values[f.name] = raw
    if 'github_token' not in values and os.environ.get('GITHUB_TOKEN'):
        values['github_token'] = os.environ['GITHUB_TOKEN']
    return values


def load_config(config_path: Optional[str] = None) -> GapCheckConfig:
    """Load configuration: defaults, then the JSON config file, then GITGAP_* environment variables."""
    config = GapCheckConfig()
    path = Path(config_path) if config_path else CONFIG_FILE

    if path.exists():
        try:
            file_values = json.loads(path.read_text())
            _apply(config, file_values, str(path))
            bt.logging.info(f"Loaded configuration from {path}")
        except json.JSONDecodeError as e:
            bt.logging.error(f"Invalid JSON in config file {path}: {e}")
    elif config_path:
        bt.logging.warning(f"Config file {path} not found, using defaults")

    _apply(config, _env_values(), 'environment')
    return config


def check_config(config: GapCheckConfig) -> None:
    """Raise ValueError if the configuration cannot drive a gap check."""
    if not config.repository:
        raise ValueError('repository is required (owner/repo)')
    if not REPO_PATTERN.match(config.repository):
        raise ValueError(f'Invalid repository format: {config.repository} (expected owner/repo)')
    if not config.github_token:
        raise ValueError('github_token is required (set GITHUB_TOKEN or GITGAP_GITHUB_TOKEN)')
    if config.gap_threshold < 1:
        raise ValueError(f'gap_threshold must be at least 1 (got {config.gap_threshold})')
    if config.check_interval_seconds < 1:
        raise ValueError(f'check_interval_seconds must be at least 1 (got {config.check_interval_seconds})')

    bt.logging.info(f"repository: {config.repository}")
    bt.logging.info(f"repo_path: {config.repo_path}")
    bt.logging.info(f"gap_threshold: {config.gap_threshold}")
