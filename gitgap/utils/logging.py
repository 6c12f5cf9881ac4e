import logging
import os
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, List

import bittensor as bt

if TYPE_CHECKING:
    from gitgap.classes import GapCheckResult

EVENTS_LOGGER_NAME = 'event'
EVENTS_LEVEL_NUM = 38
EVENTS_FILE_NAME = 'events.log'
DEFAULT_LOG_BACKUP_COUNT = 10
DEFAULT_EVENTS_RETENTION_SIZE = 2 * 1024 * 1024  # 2 MB


def setup_events_logger(log_dir: str, events_retention_size: int = DEFAULT_EVENTS_RETENTION_SIZE) -> logging.Logger:
    """Send reconciliation events to a rotating `events.log` in `log_dir`.

    Calling it again for the same directory does not add a second handler.
    """
    logging.addLevelName(EVENTS_LEVEL_NUM, 'EVENT')
    logger = logging.getLogger(EVENTS_LOGGER_NAME)
    logger.setLevel(EVENTS_LEVEL_NUM)
    logger.propagate = False

    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.abspath(os.path.join(log_dir, EVENTS_FILE_NAME))
    if any(handler.baseFilename == log_file for handler in events_file_handlers(logger)):
        return logger

    handler = RotatingFileHandler(log_file, maxBytes=events_retention_size, backupCount=DEFAULT_LOG_BACKUP_COUNT)
    handler.setLevel(EVENTS_LEVEL_NUM)
    handler.setFormatter(logging.Formatter('%(asctime)s | %(levelname)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)
    return logger


def events_file_handlers(logger: logging.Logger) -> List[RotatingFileHandler]:
    """The events.log handlers installed by setup_events_logger; other handlers (e.g. log capture) are ignored."""
    return [
        handler
        for handler in logger.handlers
        if isinstance(handler, RotatingFileHandler) and os.path.basename(handler.baseFilename) == EVENTS_FILE_NAME
    ]


def log_event(message: str) -> None:
    """Record a reconciliation event; a no-op until setup_events_logger ran."""
    logger = logging.getLogger(EVENTS_LOGGER_NAME)
    if events_file_handlers(logger):
        logger.log(EVENTS_LEVEL_NUM, message)


def log_gap_check_results(results: List['GapCheckResult'], gap_threshold: int) -> None:
    """Log a per-PR summary of one gap check run."""
    failed = [r for r in results if not r.succeeded]
    over = [r for r in results if r.succeeded and r.gap is not None and r.gap >= gap_threshold]

    bt.logging.info(
        f'Gap check finished: {len(results)} PRs checked, {len(over)} at or over {gap_threshold} commits, '
        f'{len(failed)} failed'
    )

    for result in results:
        if not result.succeeded:
            bt.logging.info(f'  ├─ PR #{result.pr_number}: error: {result.error}')
            continue
        actions = ', '.join(action.value for action in result.actions) or 'no changes'
        bt.logging.info(f'  ├─ PR #{result.pr_number}: gap {result.gap} | {actions}')
