"""
Data models for Post-Push Party.

This module provides the pydantic models shared by detection, scoring
and storage:
- Rewards and tiers of the bonus track catalogue
- Points breakdowns returned to callers
- Durable state: ref store, patch-id store, push history, player state
"""

from collections import deque
from typing import Annotated, Dict, Iterable, List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PATCH_ID_LIMIT = 500
COMMIT_VALUE_TRACK_ID = "commit_value"


# Rewards
class MultiplierReward(BaseModel):
    """Scales the whole (base + flat) total of a push."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["multiplier"] = "multiplier"
    value: int = Field(..., ge=1, description="Multiplier applied once per push")


class FlatPointsReward(BaseModel):
    """Points added to the base before multipliers."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["flat_points"] = "flat_points"
    points: int = Field(..., ge=0, description="Points per qualifying occurrence")


Reward = Annotated[Union[MultiplierReward, FlatPointsReward], Field(discriminator="kind")]


def Multiplier(value: int) -> MultiplierReward:
    return MultiplierReward(value=value)


def FlatPoints(points: int) -> FlatPointsReward:
    return FlatPointsReward(points=points)


class Tier(BaseModel):
    """Cost to reach a tier and the reward granted there."""

    model_config = ConfigDict(frozen=True)

    cost: int = Field(..., ge=0, description="Points needed to unlock this tier")
    reward: Reward


# Points breakdown
class MultiplierBonus(BaseModel):
    """A multiplier that applied to a push."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["multiplier"] = "multiplier"
    name: str
    value: int = Field(..., ge=1)


class FlatBonus(BaseModel):
    """A flat bonus that applied to a push."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["flat"] = "flat"
    name: str
    points: int = Field(..., ge=0, description="Total points granted (per-unit points x count)")
    count: int = Field(..., ge=1, description="Qualifying occurrences")


AppliedBonus = Annotated[Union[MultiplierBonus, FlatBonus], Field(discriminator="kind")]


class PointsBreakdown(BaseModel):
    """Breakdown of points earned for a push."""

    commits: int = Field(default=0, ge=0)
    points_per_commit: int = Field(default=0, ge=0)
    flat_bonus_total: int = Field(default=0, ge=0)
    total_multiplier: int = Field(default=1, ge=1)
    total: int = Field(default=0, ge=0)
    applied: List[AppliedBonus] = Field(default_factory=list)

    @property
    def base_points(self) -> int:
        return self.commits * self.points_per_commit

    @property
    def multipliers(self) -> List[MultiplierBonus]:
        return [b for b in self.applied if isinstance(b, MultiplierBonus)]

    @property
    def flat_bonuses(self) -> List[FlatBonus]:
        return [b for b in self.applied if isinstance(b, FlatBonus)]


# Durable state
class PushHistoryEntry(BaseModel):
    """One recorded push."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., ge=0, description="UTC unix time of the push")
    remote_url: str = Field(default="git@github.com:user/repo.git")
    branch: str = Field(default="main")
    commits: int = Field(default=1, ge=0, description="Commits credited by the push")


class PushHistory(BaseModel):
    """Append-only ordered log of past pushes."""

    entries: List[PushHistoryEntry] = Field(default_factory=list)

    @classmethod
    def from_entries(cls, entries: Iterable[PushHistoryEntry]) -> "PushHistory":
        return cls(entries=list(entries))

    def add(self, entry: PushHistoryEntry) -> None:
        self.entries.append(entry)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


class RefStore(BaseModel):
    """Last known ref of the tracked branch, one entry per remote."""

    refs: Dict[str, str] = Field(default_factory=dict)

    def get(self, remote_url: str) -> Optional[str]:
        return self.refs.get(remote_url)

    def set(self, remote_url: str, ref: str) -> None:
        self.refs[remote_url] = ref

    def __contains__(self, remote_url: str) -> bool:
        return remote_url in self.refs


class PatchIdStore(BaseModel):
    """Bounded, newest-first patch-id history per remote."""

    repos: Dict[str, List[str]] = Field(default_factory=dict)
    limit: int = Field(default=DEFAULT_PATCH_ID_LIMIT, ge=1, exclude=True)

    def contains(self, remote_url: str, patch_id: str) -> bool:
        return patch_id in self.repos.get(remote_url, ())

    def get_set(self, remote_url: str) -> Set[str]:
        return set(self.repos.get(remote_url, ()))

    def ids_for(self, remote_url: str) -> List[str]:
        return list(self.repos.get(remote_url, ()))

    def record(self, remote_url: str, new_ids: Iterable[str]) -> None:
        """Push new ids to the front and evict the oldest beyond the limit."""
        ids = deque(self.repos.get(remote_url, ()))
        seen = set(ids)
        for patch_id in new_ids:
            if patch_id in seen:
                continue
            ids.appendleft(patch_id)
            seen.add(patch_id)
        while len(ids) > self.limit:
            ids.pop()
        self.repos[remote_url] = list(ids)


class PlayerState(BaseModel):
    """Point balance and per-track unlock levels."""

    party_points: int = Field(default=0, ge=0)
    bonus_levels: Dict[str, int] = Field(
        default_factory=lambda: {COMMIT_VALUE_TRACK_ID: 1}
    )

    @field_validator("bonus_levels")
    @classmethod
    def validate_levels(cls, v):
        for track_id, level in v.items():
            if level < 0:
                raise ValueError(f"Level for {track_id} cannot be negative")
        return v

    def level_of(self, track_id: str) -> int:
        return self.bonus_levels.get(track_id, 0)

    def set_level(self, track_id: str, level: int) -> None:
        if level < 0:
            raise ValueError("Level cannot be negative")
        self.bonus_levels[track_id] = level

    def earn(self, points: int) -> int:
        self.party_points += points
        return self.party_points

    def spend(self, points: int) -> int:
        self.party_points = max(0, self.party_points - points)
        return self.party_points


__all__ = [
    "DEFAULT_PATCH_ID_LIMIT", "COMMIT_VALUE_TRACK_ID",
    "MultiplierReward", "FlatPointsReward", "Reward", "Multiplier", "FlatPoints", "Tier",
    "MultiplierBonus", "FlatBonus", "AppliedBonus", "PointsBreakdown",
    "PushHistoryEntry", "PushHistory", "RefStore", "PatchIdStore", "PlayerState",
]
