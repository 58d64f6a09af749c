"""
Push events produced by push detection.

This module defines the values that flow out of a hook invocation:
- Commit: one credited commit with its size and time
- PushEvent: a detected push (commits, remote, branch)
- DetectionOutcome / DetectionResult: why detection did or did not fire,
  plus what must be recorded once the push has been scored
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class DetectionOutcome(Enum):
    """Terminal outcomes of push detection."""

    PUSH = "push"
    NO_REPOSITORY = "no_repository"
    NO_REMOTE = "no_remote"
    NO_TRUNK = "no_trunk"
    REF_UNKNOWN = "ref_unknown"
    FETCH = "fetch"
    UNCHANGED = "unchanged"


class Commit(BaseModel):
    """A commit credited by a push."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Commit hash")
    lines_changed: int = Field(default=0, ge=0, description="Insertions plus deletions")
    timestamp: int = Field(default=0, ge=0, description="Committer time (unix seconds)")


class PushEvent(BaseModel):
    """A genuine push of the tracked branch."""

    model_config = ConfigDict(frozen=True)

    commits: Tuple[Commit, ...] = Field(default=(), description="Credited commits, newest first")
    remote_url: str = Field(default="", description="Remote the push went to")
    branch: str = Field(default="main", description="Branch that was pushed")

    @field_validator("commits", mode="before")
    @classmethod
    def coerce_commits(cls, v):
        if isinstance(v, list):
            return tuple(v)
        return v

    @computed_field
    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @computed_field
    @property
    def lines_changed(self) -> int:
        return sum(c.lines_changed for c in self.commits)


class DetectionResult(BaseModel):
    """Result of a detection pass.

    ``push`` is only set when ``outcome`` is PUSH. ``current_ref`` and
    ``new_patch_ids`` are what the recording step persists afterwards.
    A FETCH result carries ``remote_url`` and the fetched ``current_ref``
    so the stored ref can follow it without crediting anything.
    """

    model_config = ConfigDict(frozen=True)

    outcome: DetectionOutcome
    push: Optional[PushEvent] = None
    remote_url: Optional[str] = None
    current_ref: Optional[str] = None
    new_patch_ids: List[str] = Field(default_factory=list)
    commits_pushed: int = Field(default=0, ge=0, description="Candidates before deduplication")

    @property
    def is_push(self) -> bool:
        return self.outcome is DetectionOutcome.PUSH and self.push is not None

    @classmethod
    def not_a_push(cls, outcome: DetectionOutcome) -> "DetectionResult":
        return cls(outcome=outcome)

    @classmethod
    def fetched(cls, remote_url: str, current_ref: str) -> "DetectionResult":
        return cls(outcome=DetectionOutcome.FETCH, remote_url=remote_url, current_ref=current_ref)


__all__ = ["DetectionOutcome", "Commit", "PushEvent", "DetectionResult"]
