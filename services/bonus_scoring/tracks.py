"""
Bonus track catalogue.

This module provides the fixed set of bonus tracks:
- Each track has a stable id, display name, description and cost tiers
- ``applies`` counts how often a track fires for a push (0 = not at all)
- Multiplier tracks fire at most once; flat tracks scale with the count

Tracks are stateless. Everything they look at (the push, the history from
before the push, the clock) arrives in a PushContext.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from shared.clock import Clock, Weekday
from shared.events import PushEvent
from shared.models import (
    COMMIT_VALUE_TRACK_ID, FlatPoints, Multiplier, PushHistory, Reward, Tier
)

RAPID_FIRE_WINDOW_SECS = 15 * 60
BIG_PUSH_MIN_COMMITS = 10
MANY_LINES_MIN_LINES = 1000
MIN_STREAK_DAYS = 3
FRIDAY_AFTERNOON_START_SECS = 15 * 3600

MULTIPLIER_TIERS: List[Tier] = [
    Tier(cost=100, reward=Multiplier(2)),
    Tier(cost=500, reward=Multiplier(3)),
    Tier(cost=1500, reward=Multiplier(4)),
    Tier(cost=5000, reward=Multiplier(5)),
    Tier(cost=15000, reward=Multiplier(6)),
]

FLAT_TIERS: List[Tier] = [
    Tier(cost=50, reward=FlatPoints(5)),
    Tier(cost=200, reward=FlatPoints(10)),
    Tier(cost=800, reward=FlatPoints(20)),
    Tier(cost=3000, reward=FlatPoints(50)),
]

COMMIT_VALUE_TIERS: List[Tier] = [
    Tier(cost=0, reward=FlatPoints(1)),
    Tier(cost=25, reward=FlatPoints(2)),
    Tier(cost=100, reward=FlatPoints(3)),
    Tier(cost=400, reward=FlatPoints(4)),
    Tier(cost=1600, reward=FlatPoints(5)),
]


@dataclass(frozen=True)
class PushContext:
    """What a track may look at when deciding whether it applies."""

    push: PushEvent
    history: PushHistory
    clock: Clock


def validate_tiers(track_id: str, tiers: Sequence[Tier]) -> None:
    """Tier costs must be strictly increasing."""
    for previous, tier in zip(tiers, tiers[1:]):
        if tier.cost <= previous.cost:
            raise ValueError(
                f"Tiers of {track_id} must have increasing costs "
                f"({previous.cost} then {tier.cost})"
            )


class BonusTrack(ABC):
    """A rule that can be unlocked and upgraded through its tiers."""

    id: str = ""
    name: str = ""
    description: str = ""
    tiers: Sequence[Tier] = ()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        validate_tiers(cls.id, cls.tiers)

    @abstractmethod
    def applies(self, ctx: PushContext) -> int:
        """How many times the bonus applies to this push."""

    @property
    def max_level(self) -> int:
        return len(self.tiers)

    def reward_at_level(self, level: int) -> Optional[Reward]:
        """Reward at ``level`` (1 = first tier). None when locked or out of range."""
        if level <= 0 or level > len(self.tiers):
            return None
        return self.tiers[level - 1].reward

    def next_tier(self, level: int) -> Optional[Tier]:
        """The tier the next upgrade buys, or None when maxed out."""
        if level < 0 or level >= len(self.tiers):
            return None
        return self.tiers[level]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class CommitValue(BonusTrack):
    id = COMMIT_VALUE_TRACK_ID
    name = "Commit Value"
    description = "How many party points you earn per commit."
    tiers = COMMIT_VALUE_TIERS

    def applies(self, ctx: PushContext) -> int:
        return 1 if ctx.push.commits else 0


class FirstPush(BonusTrack):
    id = "first_push"
    name = "First Push of the Day"
    description = "Earn bonus points on your first push each day."
    tiers = MULTIPLIER_TIERS

    def applies(self, ctx: PushContext) -> int:
        if not ctx.push.commits:
            return 0
        today = ctx.clock.today()
        pushed_today = any(ctx.clock.day_of(e.timestamp) == today for e in ctx.history)
        return 0 if pushed_today else 1


class RapidFire(BonusTrack):
    id = "rapid_fire"
    name = "Rapid Fire"
    description = "Bonus for pushing twice within 15 minutes."
    tiers = MULTIPLIER_TIERS

    def applies(self, ctx: PushContext) -> int:
        if not ctx.push.commits:
            return 0
        cutoff = max(0, ctx.clock.now - RAPID_FIRE_WINDOW_SECS)
        return 1 if any(e.timestamp >= cutoff for e in ctx.history) else 0


class BigPush(BonusTrack):
    id = "big_push"
    name = "Big Push"
    description = "More points if you push 10+ commits at once."
    tiers = MULTIPLIER_TIERS

    def applies(self, ctx: PushContext) -> int:
        return 1 if len(ctx.push.commits) >= BIG_PUSH_MIN_COMMITS else 0


class MultipleRepos(BonusTrack):
    id = "multiple_repos"
    name = "Spread the Love"
    description = "Bonus each time you push to a different repo today (after the first)."
    tiers = MULTIPLIER_TIERS

    def applies(self, ctx: PushContext) -> int:
        if not ctx.push.commits:
            return 0
        today = ctx.clock.today()
        repos_today = {
            e.remote_url for e in ctx.history if ctx.clock.day_of(e.timestamp) == today
        }
        if repos_today and ctx.push.remote_url not in repos_today:
            return 1
        return 0


class WeekendPush(BonusTrack):
    id = "weekend_push"
    name = "Weekend Warrior"
    description = "More points for pushing code on Saturday and Sunday."
    tiers = MULTIPLIER_TIERS

    def applies(self, ctx: PushContext) -> int:
        if not ctx.push.commits:
            return 0
        weekend = (Weekday.SATURDAY, Weekday.SUNDAY)
        return 1 if ctx.clock.day_of_week() in weekend else 0


class FridayAfternoon(BonusTrack):
    id = "friday_afternoon"
    name = "Friday Afternoon Deploy"
    description = "Bonus for pushing code on Friday after 3pm. Living dangerously."
    tiers = MULTIPLIER_TIERS

    def applies(self, ctx: PushContext) -> int:
        if not ctx.push.commits:
            return 0
        is_friday = ctx.clock.day_of_week() == Weekday.FRIDAY
        is_afternoon = ctx.clock.local_seconds_since_midnight() >= FRIDAY_AFTERNOON_START_SECS
        return 1 if is_friday and is_afternoon else 0


def consecutive_push_days(history: PushHistory, clock: Clock) -> int:
    """Length of the run of local days with a push, ending today."""
    days = {clock.day_of(e.timestamp) for e in history}
    count = 0
    day = clock.today()
    while day in days:
        count += 1
        day -= 1
    return count


class Streak(BonusTrack):
    id = "streak"
    name = "Hot Streak"
    description = "Multiplier for pushing 3+ days in a row."
    tiers = MULTIPLIER_TIERS

    def applies(self, ctx: PushContext) -> int:
        if not ctx.push.commits:
            return 0
        return 1 if consecutive_push_days(ctx.history, ctx.clock) >= MIN_STREAK_DAYS else 0


class OneLineChange(BonusTrack):
    id = "one_line_change"
    name = "Sniper"
    description = "Bonus points for surgical single-line commits."
    tiers = FLAT_TIERS

    def applies(self, ctx: PushContext) -> int:
        return sum(1 for c in ctx.push.commits if c.lines_changed == 1)


class ManyLinesChanged(BonusTrack):
    id = "many_lines_changed"
    name = "Moby Diff"
    description = "More points for big commits with at least 1,000 lines changed."
    tiers = FLAT_TIERS

    def applies(self, ctx: PushContext) -> int:
        return sum(1 for c in ctx.push.commits if c.lines_changed >= MANY_LINES_MIN_LINES)


ALL_TRACKS: List[BonusTrack] = [
    CommitValue(),
    FirstPush(),
    RapidFire(),
    BigPush(),
    MultipleRepos(),
    WeekendPush(),
    FridayAfternoon(),
    Streak(),
    OneLineChange(),
    ManyLinesChanged(),
]

TRACKS_BY_ID: Dict[str, BonusTrack] = {track.id: track for track in ALL_TRACKS}


def get_track(track_id: str) -> BonusTrack:
    """Look a track up by id. Raises KeyError for unknown ids."""
    try:
        return TRACKS_BY_ID[track_id]
    except KeyError:
        raise KeyError(f"Unknown bonus track: {track_id}") from None


__all__ = [
    "PushContext", "BonusTrack", "ALL_TRACKS", "TRACKS_BY_ID", "get_track",
    "consecutive_push_days", "validate_tiers",
    "CommitValue", "FirstPush", "RapidFire", "BigPush", "MultipleRepos",
    "WeekendPush", "FridayAfternoon", "Streak", "OneLineChange", "ManyLinesChanged",
    "MULTIPLIER_TIERS", "FLAT_TIERS", "COMMIT_VALUE_TIERS",
]
