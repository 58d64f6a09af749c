"""
Push Tracker Service for Post-Push Party.

This module provides the hook entry point that ties the pieces together:
- Load the durable stores
- Detect whether a push happened (a fetch only moves the stored ref)
- Score the push against the history from before it
- Record the push and credit the points
- Save every store

``evaluate_now`` is safe to call at any time. It returns None whenever no
push happened and never raises.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from config.settings import Settings, get_settings
from shared.clock import Clock
from shared.events import Commit, PushEvent
from shared.models import PlayerState, PointsBreakdown, PushHistory, PushHistoryEntry
from shared.storage import StateStorage, StorageError
from services.bonus_scoring.main import ScoringEngine
from services.push_detector.main import PushDetector
from services.push_detector.vcs import VCS, GitVCS

logger = logging.getLogger(__name__)

FAKE_REMOTE_URL = "dev://fake"
DEFAULT_FAKE_LINES = 10


class PushTrackerService:
    """Runs push detection and scoring for one repository."""

    def __init__(
        self,
        repo_path: Union[str, Path, None] = None,
        settings: Optional[Settings] = None,
        storage: Optional[StateStorage] = None,
        engine: Optional[ScoringEngine] = None,
        clock_factory: Callable[[], Clock] = Clock.from_now,
        vcs: Optional[VCS] = None,
    ):
        self.repo_path = repo_path
        self.settings = settings or get_settings()
        self.storage = storage or StateStorage(self.settings)
        self.engine = engine or ScoringEngine()
        self.clock_factory = clock_factory
        self._vcs = vcs

    def _open_vcs(self) -> Optional[VCS]:
        if self._vcs is not None:
            return self._vcs
        return GitVCS.open(self.repo_path, self.settings)

    def detector(self, clock: Optional[Clock] = None) -> PushDetector:
        return PushDetector(self._open_vcs(), self.settings, clock or self.clock_factory())

    def evaluate_now(self) -> Optional[PointsBreakdown]:
        """Check for a push and credit it. Returns the breakdown, or None."""
        try:
            return self._evaluate()
        except Exception as e:
            logger.exception(f"Push evaluation failed: {e}")
            return None

    def _evaluate(self) -> Optional[PointsBreakdown]:
        clock = self.clock_factory()
        detector = self.detector(clock)

        refs = self.storage.load_refs()
        patch_ids = self.storage.load_patch_ids()
        history = self.storage.load_history()
        state = self.storage.load_state()

        result = detector.detect(refs, patch_ids)
        if not result.is_push:
            logger.debug(f"No push: {result.outcome.value}")
            if detector.follow_fetch(result, refs):
                self._save_all([(self.storage.save_refs, refs)])
            return None

        breakdown = self.engine.calculate(result.push, state.bonus_levels, history, clock)
        detector.record(result, refs, patch_ids, history, clock)
        state.earn(breakdown.total)

        self._save_all([
            (self.storage.save_state, state),
            (self.storage.save_history, history),
            (self.storage.save_patch_ids, patch_ids),
            (self.storage.save_refs, refs),
        ])
        logger.info(
            f"Push to {result.push.remote_url} credited {result.push.commit_count} of "
            f"{result.commits_pushed} commits for {breakdown.total} points"
        )
        return breakdown

    def _save_all(self, saves) -> List[StorageError]:
        """Save every store, carrying on past failures."""
        failures = []
        for save, value in saves:
            try:
                save(value)
            except StorageError as e:
                logger.warning(f"{e}; the points are credited for this run only")
                failures.append(e)
        return failures

    def snapshot(self) -> bool:
        """Record the remote's current ref so only later pushes earn points."""
        refs = self.storage.load_refs()
        if not self.detector().snapshot(refs):
            return False
        self.storage.save_refs(refs)
        return True

    def simulate_push(self, commit_count: int,
                      lines: Optional[Sequence[int]] = None) -> PointsBreakdown:
        """Score and record a fake push, as the hook would for a real one."""
        if commit_count < 0:
            raise ValueError("Commit count cannot be negative")
        clock = self.clock_factory()
        sizes = list(lines) if lines else [DEFAULT_FAKE_LINES]
        commits = [
            Commit(id=f"fake{i}", lines_changed=sizes[i % len(sizes)], timestamp=clock.now)
            for i in range(commit_count)
        ]
        push = PushEvent(commits=commits, remote_url=FAKE_REMOTE_URL, branch="main")

        history = self.storage.load_history()
        state = self.storage.load_state()
        breakdown = self.engine.calculate(push, state.bonus_levels, history, clock)
        state.earn(breakdown.total)
        history.add(PushHistoryEntry(
            timestamp=clock.now,
            remote_url=push.remote_url,
            branch=push.branch,
            commits=push.commit_count,
        ))
        self._save_all([
            (self.storage.save_state, state),
            (self.storage.save_history, history),
        ])
        return breakdown

    def reset(self) -> None:
        """Reset the balance, unlock levels and push history to defaults."""
        self.storage.save_state(PlayerState())
        self.storage.save_history(PushHistory())
        logger.info("State and history reset to defaults")


__all__ = ["PushTrackerService", "FAKE_REMOTE_URL"]
