#!/usr/bin/env python3
"""
Post-Push Party push tracker

On-demand version of the git hook:
- Detects whether the tracked branch was pushed since the last run
- Scores the push and credits the points
- Shows the breakdown in the console

Usage:
    python track_push.py [OPTIONS]

Examples:
    python track_push.py                           # Check the repo in the current directory
    python track_push.py --repo-path /path/to/repo # Check a specific repository
    python track_push.py --snapshot                # Start counting from the current remote ref
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel

from config.settings import configure_logging, get_settings
from services.push_detector.vcs import GitVCS
from services.push_tracker.cli import display_breakdown, display_error
from services.push_tracker.main import PushTrackerService

console = Console()


def display_help_text():
    """Display help text with usage examples."""
    help_text = """
[bold cyan]Post-Push Party[/bold cyan]

Earn party points every time you push code.

[bold yellow]Usage Examples:[/bold yellow]
  python track_push.py                           # Check the current repository
  python track_push.py --repo-path /path/to/repo # Check a specific repository
  python track_push.py --snapshot                # Only remember the current remote ref

[bold yellow]Data Storage:[/bold yellow]
  State is stored locally in: [green]~/.post-push-party[/green]
  Override with PARTY_STORAGE__STATE_DIR
    """
    console.print(Panel(help_text, title="Help", border_style="blue"))


@click.command()
@click.option(
    '--repo-path',
    default='.',
    help='Path to Git repository (default: current directory)',
    type=click.Path(exists=True, file_okay=False, dir_okay=True)
)
@click.option(
    '--snapshot',
    is_flag=True,
    help='Remember the current remote ref without awarding points'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose output'
)
@click.option(
    '--help',
    is_flag=True,
    help='Show detailed help'
)
def track_push(repo_path: str, snapshot: bool, verbose: bool, help: bool):
    """Check for a push and award party points."""
    if help:
        display_help_text()
        return

    settings = get_settings()
    configure_logging(settings, verbose=verbose)

    repo_path = Path(repo_path).resolve()
    vcs = GitVCS.open(repo_path, settings)
    if vcs is None:
        display_error(
            f"Not a Git repository: {repo_path}",
            "Make sure you're in a Git repository or specify the correct path with --repo-path"
        )
        sys.exit(1)

    service = PushTrackerService(repo_path=repo_path, settings=settings, vcs=vcs)
    if snapshot:
        if service.snapshot():
            console.print("[green]✅ Snapshot saved[/green]")
        else:
            console.print("[yellow]Nothing to snapshot[/yellow]")
        return

    breakdown = service.evaluate_now()
    if breakdown is None:
        console.print("[dim]No new push detected[/dim]")
        return
    display_breakdown(breakdown)


if __name__ == "__main__":
    track_push()
