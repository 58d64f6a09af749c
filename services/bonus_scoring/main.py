"""
Points calculation for pushes.

The ScoringEngine applies the unlocked bonus tracks to a push:

    total = (commits * points_per_commit + flat bonuses) * product(multipliers)

``points_per_commit`` comes from the Commit Value track. Every other
unlocked track that applies either adds flat points (scaled by how often it
applies) or multiplies the total once.
"""

import logging
from typing import List, Mapping, Optional, Sequence

from shared.clock import Clock
from shared.events import PushEvent
from shared.models import (
    COMMIT_VALUE_TRACK_ID, FlatBonus, FlatPointsReward, MultiplierBonus,
    MultiplierReward, PointsBreakdown, PushHistory
)
from services.bonus_scoring.tracks import ALL_TRACKS, BonusTrack, PushContext

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Combines the track catalogue with unlock levels to score pushes."""

    def __init__(self, tracks: Optional[Sequence[BonusTrack]] = None):
        self.tracks = list(tracks) if tracks is not None else list(ALL_TRACKS)

    def points_per_commit(self, unlock_levels: Mapping[str, int]) -> int:
        track = next((t for t in self.tracks if t.id == COMMIT_VALUE_TRACK_ID), None)
        if track is None:
            return 0
        reward = track.reward_at_level(unlock_levels.get(COMMIT_VALUE_TRACK_ID, 0))
        if isinstance(reward, FlatPointsReward):
            return reward.points
        return 0

    def calculate(self, push: PushEvent, unlock_levels: Mapping[str, int],
                  history: PushHistory, clock: Clock) -> PointsBreakdown:
        """
        Score a push.

        Args:
            push: The detected push
            unlock_levels: Track id to level; missing ids are locked
            history: Pushes recorded before this one
            clock: The moment of the push

        Returns:
            PointsBreakdown: Totals plus the bonuses that applied
        """
        points_per_commit = self.points_per_commit(unlock_levels)
        base_points = len(push.commits) * points_per_commit

        ctx = PushContext(push=push, history=history, clock=clock)
        flat_total = 0
        total_multiplier = 1
        flats: List[FlatBonus] = []
        multipliers: List[MultiplierBonus] = []

        for track in self.tracks:
            if track.id == COMMIT_VALUE_TRACK_ID:
                continue
            level = unlock_levels.get(track.id, 0)
            if level <= 0:
                continue
            count = track.applies(ctx)
            if count <= 0:
                continue

            reward = track.reward_at_level(level)
            if isinstance(reward, FlatPointsReward):
                points = reward.points * count
                flat_total += points
                flats.append(FlatBonus(name=track.name, points=points, count=count))
            elif isinstance(reward, MultiplierReward):
                total_multiplier *= reward.value
                multipliers.append(MultiplierBonus(name=track.name, value=reward.value))

        total = (base_points + flat_total) * total_multiplier
        logger.debug(
            f"Scored {len(push.commits)} commits: ({base_points} + {flat_total}) "
            f"x {total_multiplier} = {total}"
        )
        return PointsBreakdown(
            commits=len(push.commits),
            points_per_commit=points_per_commit,
            flat_bonus_total=flat_total,
            total_multiplier=total_multiplier,
            total=total,
            applied=[*flats, *multipliers],
        )


def calculate_points(push: PushEvent, unlock_levels: Mapping[str, int],
                     history: PushHistory, clock: Clock) -> PointsBreakdown:
    """Score a push with the full catalogue."""
    return ScoringEngine().calculate(push, unlock_levels, history, clock)


__all__ = ["ScoringEngine", "calculate_points"]
