#!/usr/bin/env python3
"""
Post-Push Party CLI

Earn party points by pushing code. This CLI installs the git hook, runs
push detection when the hook fires, and shows points, stats and the bonus
track catalogue.
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config.settings import configure_logging, get_settings
from shared.clock import Clock
from shared.models import FlatBonus, FlatPointsReward, PointsBreakdown
from shared.storage import StateStorage, StorageError
from services.bonus_scoring.tracks import ALL_TRACKS, TRACKS_BY_ID, consecutive_push_days
from services.push_detector.vcs import GitVCS
from services.push_tracker.hooks import UninstallResult, install_git_hook, uninstall_git_hook
from services.push_tracker.main import PushTrackerService

console = Console()


def describe_reward(reward) -> str:
    if reward is None:
        return "-"
    if isinstance(reward, FlatPointsReward):
        return f"+{reward.points}"
    return f"x{reward.value}"


def display_breakdown(breakdown: PointsBreakdown):
    """Display the points earned by a push."""
    text = Text()
    text.append("🎉 ", style="bold")
    text.append(f"+{breakdown.total} party points\n\n", style="bold green")
    text.append("Commits: ", style="cyan")
    text.append(f"{breakdown.commits} x {breakdown.points_per_commit} pts\n", style="white")

    for bonus in breakdown.applied:
        if isinstance(bonus, FlatBonus):
            text.append(f"{bonus.name}: ", style="yellow")
            text.append(f"+{bonus.points} ({bonus.count}x)\n", style="white")
        else:
            text.append(f"{bonus.name}: ", style="magenta")
            text.append(f"x{bonus.value}\n", style="white")

    text.append("Total: ", style="cyan")
    text.append(
        f"({breakdown.base_points} + {breakdown.flat_bonus_total}) "
        f"x {breakdown.total_multiplier} = {breakdown.total}",
        style="bold white",
    )
    console.print(Panel(text, title="Post-Push Party", border_style="green"))


def display_tracks(levels):
    """Display the bonus track catalogue with the player's levels."""
    table = Table(title="Bonus Tracks", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Level", style="yellow")
    table.add_column("Reward", style="white")
    table.add_column("Next", style="blue")
    table.add_column("Description", style="white")

    for track in ALL_TRACKS:
        level = levels.get(track.id, 0)
        next_tier = track.next_tier(level)
        next_text = (
            f"{describe_reward(next_tier.reward)} for {next_tier.cost}" if next_tier else "max"
        )
        table.add_row(
            track.id,
            track.name,
            f"{level}/{track.max_level}",
            describe_reward(track.reward_at_level(level)),
            next_text,
            track.description,
        )
    console.print(table)


def display_error(error: str, suggestion: str = ""):
    error_text = Text()
    error_text.append("❌ ", style="bold red")
    error_text.append(f"{error}\n", style="white")
    if suggestion:
        error_text.append("Suggestion: ", style="yellow")
        error_text.append(suggestion, style="white")
    console.print(Panel(error_text, title="Error", border_style="red"))


def format_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def open_repository() -> GitVCS:
    vcs = GitVCS.open(Path.cwd(), get_settings())
    if vcs is None:
        display_error("Not a git repository", "Run this inside the repository you push from")
        sys.exit(1)
    return vcs


@click.group()
@click.version_option(version="1.0.0")
@click.option('--verbose', '-v', is_flag=True, help='Log debug output to stderr')
def party(verbose: bool):
    """Post-Push Party - earn party points by pushing code."""
    configure_logging(get_settings(), verbose=verbose)


@party.command()
@click.option('--branch', help='Branch to track (defaults to the remote trunk)')
def init(branch: Optional[str]):
    """Install the push hook in the current repository."""
    vcs = open_repository()
    if branch:
        vcs.set_tracked_branch(branch)
    path = install_git_hook(vcs.git_dir)
    console.print(f"[green]✅ Installed hook at {path}[/green]")

    # Existing commits are not worth points: start counting from here
    if PushTrackerService(settings=get_settings(), vcs=vcs).snapshot():
        console.print("[dim]Remote refs snapshotted[/dim]")
    else:
        console.print("[yellow]No remote branch to snapshot yet; the first push counts one commit[/yellow]")


@party.command()
def uninit():
    """Remove the push hook from the current repository."""
    vcs = open_repository()
    result = uninstall_git_hook(vcs.git_dir)
    if result is UninstallResult.REMOVED:
        console.print("[green]✅ Hook removed[/green]")
    elif result is UninstallResult.NOT_INSTALLED:
        console.print("[yellow]No hook installed[/yellow]")
    else:
        console.print("[yellow]The hook was modified; remove the party line by hand[/yellow]")


@party.command(hidden=True)
@click.argument('hook_args', nargs=-1)
def hook(hook_args: Tuple[str, ...]):
    """Called by the git hook."""
    # reference-transaction runs once per phase; only the committed one matters
    if hook_args and hook_args[0] != "committed":
        return
    service = PushTrackerService(repo_path=Path.cwd(), settings=get_settings())
    breakdown = service.evaluate_now()
    if breakdown is not None:
        display_breakdown(breakdown)


@party.command()
def snapshot():
    """Remember the remote's current ref without awarding points."""
    service = PushTrackerService(repo_path=Path.cwd(), settings=get_settings())
    if service.snapshot():
        console.print("[green]✅ Snapshot saved[/green]")
    else:
        console.print("[yellow]Nothing to snapshot[/yellow]")


@party.command()
def points():
    """Show the party point balance."""
    state = StateStorage(get_settings()).load_state()
    console.print(f"[bold green]{state.party_points}[/bold green] party points")


@party.command()
def stats():
    """Show push statistics."""
    storage = StateStorage(get_settings())
    history = storage.load_history()
    state = storage.load_state()
    clock = Clock.from_now()

    today = clock.today()
    today_entries = [e for e in history if clock.day_of(e.timestamp) == today]
    table = Table(title="Push Statistics", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_row("Party Points", str(state.party_points))
    table.add_row("Pushes Today", str(len(today_entries)))
    table.add_row("Commits Today", str(sum(e.commits for e in today_entries)))
    table.add_row("Repos Today", str(len({e.remote_url for e in today_entries})))
    table.add_row("Total Pushes", str(len(history)))
    table.add_row("Total Commits", str(sum(e.commits for e in history)))
    table.add_row("Streak", f"{consecutive_push_days(history, clock)} days")
    if len(history):
        table.add_row("Last Push", format_time(history.entries[-1].timestamp))
    console.print(table)


@party.command()
def dump():
    """Print all local state as JSON (for debugging)."""
    storage = StateStorage(get_settings())
    data = {
        "state_dir": str(storage.state_dir),
        "state": storage.load_state().model_dump(),
        "refs": storage.load_refs().model_dump(),
        "patch_ids": {
            url: len(ids) for url, ids in storage.load_patch_ids().repos.items()
        },
        "history": storage.load_history().model_dump(),
    }
    click.echo(json.dumps(data, indent=2))


@party.command()
def tracks():
    """List the bonus tracks and your levels."""
    state = StateStorage(get_settings()).load_state()
    display_tracks(state.bonus_levels)


@party.group()
def dev():
    """Development helpers."""
    pass


@dev.command()
@click.option('--commits', '-c', default=1, type=click.IntRange(0, 1000), help='Commits in the fake push')
@click.option('--lines', '-l', multiple=True, type=click.IntRange(0), help='Lines changed per commit (cycled)')
def push(commits: int, lines: Tuple[int, ...]):
    """Score and record a fake push."""
    service = PushTrackerService(settings=get_settings())
    breakdown = service.simulate_push(commits, list(lines) or None)
    display_breakdown(breakdown)


@dev.command()
@click.argument('amount', type=int)
def cheat(amount: int):
    """Add (or with a negative amount, remove) party points."""
    storage = StateStorage(get_settings())
    state = storage.load_state()
    old = state.party_points
    if amount < 0:
        state.spend(-amount)
    else:
        state.earn(amount)
    try:
        storage.save_state(state)
    except StorageError as e:
        display_error(str(e))
        sys.exit(1)
    console.print(f"{old} → {state.party_points} party points")


@dev.command()
@click.argument('track_id')
@click.argument('level', type=click.IntRange(0))
def bonus(track_id: str, level: int):
    """Set a bonus track to a level."""
    track = TRACKS_BY_ID.get(track_id)
    if track is None:
        display_error(f"Unknown track: {track_id}", f"Available: {', '.join(TRACKS_BY_ID)}")
        sys.exit(1)
    if level > track.max_level:
        display_error(f"{track_id} only has {track.max_level} levels")
        sys.exit(1)

    storage = StateStorage(get_settings())
    state = storage.load_state()
    state.set_level(track_id, level)
    try:
        storage.save_state(state)
    except StorageError as e:
        display_error(str(e))
        sys.exit(1)
    console.print(f"{track_id} set to level {level}")


@dev.command()
def reset():
    """Reset points, levels and push history."""
    try:
        PushTrackerService(settings=get_settings()).reset()
    except StorageError as e:
        display_error(str(e))
        sys.exit(1)
    console.print("State and history reset to defaults")


if __name__ == "__main__":
    party()
