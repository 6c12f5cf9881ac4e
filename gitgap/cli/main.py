# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
gitgap CLI - Main entry point

Usage:
    gitgap check             - Check the gap of every open pull request once
    gitgap watch             - Check periodically (alias: w)
    gitgap gap A B           - Compute a gap from two saved `git log --oneline` outputs
    gitgap config            - Show/set CLI configuration
"""

import json
import sys
from dataclasses import fields
from typing import Dict, List, Optional

import bittensor as bt
import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from gitgap import __version__
from gitgap.classes import GapCheckResult
from gitgap.exceptions import GapBotError
from gitgap.fetcher.fetcher import build_fetcher
from gitgap.fetcher.gap import compute_gap, parse_log
from gitgap.utils.config import CONFIG_FILE, GITGAP_DIR, GapCheckConfig, check_config, load_config
from gitgap.utils.logging import setup_events_logger

console = Console()


class AliasGroup(click.Group):
    """click.Group resolving short aliases; --help lists each alias beside its command."""

    def __init__(self, *args, aliases: Optional[Dict[str, str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.aliases = dict(aliases or {})  # alias -> command name

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def format_commands(self, ctx, formatter):
        rows = []
        for name in self.list_commands(ctx):
            command = self.commands.get(name)
            if command is None or command.hidden:
                continue
            shown = [name] + sorted(alias for alias, target in self.aliases.items() if target == name)
            rows.append((', '.join(shown), command.get_short_help_str(limit=150)))

        if rows:
            with formatter.section('Commands'):
                formatter.write_dl(rows)


@click.group(cls=AliasGroup, aliases={'w': 'watch'})
@click.version_option(version=__version__, prog_name='gitgap')
def cli():
    """gitgap - Flag pull requests whose base has fallen behind upstream"""
    load_dotenv()


def _load_checked_config(config_path: Optional[str], threshold: Optional[int], debug: bool) -> GapCheckConfig:
    if debug:
        bt.logging.set_debug(True)

    config = load_config(config_path)
    if threshold is not None:
        config.gap_threshold = threshold

    try:
        check_config(config)
    except ValueError as e:
        raise click.UsageError(str(e))

    if config.events_log_dir:
        setup_events_logger(config.events_log_dir, config.events_retention_size)
    return config


def print_results(results: List[GapCheckResult], gap_threshold: int) -> None:
    """Print a table of per-PR results."""
    if not results:
        console.print('[yellow]No open pull requests[/yellow]')
        return

    table = Table(show_header=True)
    table.add_column('PR', style='cyan', justify='right')
    table.add_column('Gap', justify='right')
    table.add_column('Actions', style='green')
    table.add_column('Error', style='red')

    for result in results:
        if result.gap is None:
            gap_str = '-'
        elif result.gap >= gap_threshold:
            gap_str = f'[bold yellow]{result.gap}[/bold yellow]'
        else:
            gap_str = str(result.gap)
        actions = ', '.join(action.value for action in result.actions)
        table.add_row(f'#{result.pr_number}', gap_str, actions, result.error or '')

    console.print(table)


config_option = click.option(
    '--config', 'config_path', type=click.Path(dir_okay=False), default=None, help='Path to a JSON config file'
)
threshold_option = click.option('--threshold', type=click.IntRange(min=1), default=None, help='Override gap threshold')
debug_option = click.option('--debug', is_flag=True, default=False, help='Enable debug logging')


@cli.command('check')
@config_option
@threshold_option
@debug_option
def check(config_path: Optional[str], threshold: Optional[int], debug: bool):
    """Check the gap of every open pull request once."""
    config = _load_checked_config(config_path, threshold, debug)
    fetcher = build_fetcher(config)

    try:
        results = fetcher.check_prs_gap()
    except GapBotError as e:
        console.print(f'[red]Gap check failed: {e}[/red]')
        sys.exit(1)

    print_results(results, config.gap_threshold)


@cli.command('watch')
@config_option
@threshold_option
@debug_option
@click.option('--interval', type=click.IntRange(min=1), default=None, help='Seconds between checks')
@click.option('--max-cycles', type=click.IntRange(min=1), default=None, help='Stop after this many checks')
def watch(
    config_path: Optional[str], threshold: Optional[int], debug: bool, interval: Optional[int], max_cycles: Optional[int]
):
    """Check the gap of open pull requests periodically."""
    config = _load_checked_config(config_path, threshold, debug)
    fetcher = build_fetcher(config)
    interval = interval or config.check_interval_seconds

    console.print(f'[dim]Checking {config.repository} every {interval}s[/dim]')
    try:
        fetcher.run_forever(interval, max_cycles=max_cycles)
    except KeyboardInterrupt:
        console.print('\n[dim]Stopped[/dim]')


@cli.command('gap')
@click.argument('master_log', type=click.File('r'))
@click.argument('branch_log', type=click.File('r'))
def gap(master_log, branch_log):
    """Compute the gap between two saved `git log --oneline` outputs (most recent first)."""
    master = parse_log(master_log.read())
    branch = parse_log(branch_log.read())
    click.echo(compute_gap(master, branch))


def _read_config_file() -> Dict[str, str]:
    if not CONFIG_FILE.exists():
        return {}
    try:
        return json.loads(CONFIG_FILE.read_text())
    except json.JSONDecodeError:
        console.print('[yellow]Existing config is not valid JSON, starting fresh[/yellow]')
        return {}


@click.group(name='config', invoke_without_command=True)
@click.pass_context
def config_group(ctx):
    """Show the gitgap config file, or change it with `config set`."""
    if ctx.invoked_subcommand is None:
        show_config()


def show_config():
    console.print('\n[bold]gitgap Configuration[/bold]\n')

    if not CONFIG_FILE.exists():
        console.print(f'[yellow]No config file found at {CONFIG_FILE}[/yellow]')
        console.print('[dim]Create one with: gitgap config set repository <owner/repo>[/dim]')
        return

    config = load_config(str(CONFIG_FILE))

    table = Table(show_header=True)
    table.add_column('Key', style='cyan')
    table.add_column('Effective value', style='green')
    for key, value in config.to_display_dict().items():
        table.add_row(key, '' if value is None else str(value))

    console.print(table)
    console.print(f'\n[dim]Environment variables (GITGAP_*) override {CONFIG_FILE}[/dim]\n')


@config_group.command('set')
@click.argument('key')
@click.argument('value')
def config_set(key: str, value: str):
    """Store KEY=VALUE in the config file.

    \b
    Keys:
        repository          owner/repo whose pull requests are checked
        repo_path           local checkout used for git operations
        remote              remote pointing at the repository (default upstream)
        base_branch         branch pull requests target (default master)
        gap_threshold       commits behind before a PR is flagged (default 20)

    \b
    e.g.
        gitgap config set repository alibaba/pouch
        gitgap config set gap_threshold 20
    """
    known = [f.name for f in fields(GapCheckConfig)]
    if key not in known:
        raise click.BadParameter(f'Unknown key: {key}. Known keys: {", ".join(known)}', param_hint='key')

    stored = _read_config_file()
    previous = stored.get(key)
    stored[key] = value

    GITGAP_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(stored, indent=2))

    if previous is None:
        console.print(f'[green]Set {key}:[/green] {value}')
    else:
        console.print(f'[green]Updated {key}:[/green] {previous} -> {value}')


cli.add_command(config_group)


def main():
    cli()


if __name__ == '__main__':
    main()
