"""
Push detection for Post-Push Party.

This module decides whether a hook invocation saw a genuine push:
- Fetches and no-op ref updates are rejected
- Commits already credited (same patch-id) are not credited again
- Commits already on another remote branch are not credited again
- The first push to an unknown remote credits exactly one commit

Detection never mutates stores. ``record`` persists the outcome once the
push has been scored, so scoring sees the history from before the push.
``follow_fetch`` moves the stored ref along with a fetch.
"""

import logging
from typing import List, Optional, Set

from config.settings import Settings, get_settings
from shared.clock import Clock
from shared.events import Commit, DetectionOutcome, DetectionResult, PushEvent
from shared.models import PatchIdStore, PushHistory, PushHistoryEntry, RefStore
from services.push_detector.vcs import VCS

logger = logging.getLogger(__name__)


class PushDetector:
    """Detects pushes of the tracked branch of one repository."""

    def __init__(self, vcs: Optional[VCS], settings: Optional[Settings] = None,
                 clock: Optional[Clock] = None):
        self.vcs = vcs
        self.settings = settings or get_settings()
        self.clock = clock or Clock.from_now()

    def tracked_branch(self) -> Optional[str]:
        """The configured branch, else the remote's trunk."""
        configured = self.settings.detection.tracked_branch
        if configured:
            return configured
        if self.vcs is None:
            return None
        return self.vcs.configured_branch() or self.vcs.trunk_branch()

    def detect(self, ref_store: RefStore, patch_store: PatchIdStore) -> DetectionResult:
        """Work out whether the tracked branch was just pushed."""
        if self.vcs is None:
            logger.debug("No repository, not a push")
            return DetectionResult.not_a_push(DetectionOutcome.NO_REPOSITORY)

        remote_url = self.vcs.remote_url()
        if remote_url is None:
            logger.debug("No remote configured, not a push")
            return DetectionResult.not_a_push(DetectionOutcome.NO_REMOTE)

        branch = self.tracked_branch()
        if branch is None:
            logger.debug(f"No trunk branch found for {remote_url}")
            return DetectionResult.not_a_push(DetectionOutcome.NO_TRUNK)

        current_ref = self.vcs.ref_of(branch, remote=True)
        if current_ref is None:
            logger.debug(f"Remote-tracking ref of {branch} is unknown")
            return DetectionResult.not_a_push(DetectionOutcome.REF_UNKNOWN)

        # After a push the local branch and its remote-tracking ref agree.
        # After a fetch they usually do not.
        local_ref = self.vcs.ref_of(branch, remote=False)
        if local_ref != current_ref:
            logger.debug(f"{branch}: local {local_ref} != remote {current_ref}, fetch")
            return DetectionResult.fetched(remote_url, current_ref)

        last_ref = ref_store.get(remote_url)
        if last_ref == current_ref:
            logger.debug(f"{branch} unchanged at {current_ref}")
            return DetectionResult.not_a_push(DetectionOutcome.UNCHANGED)

        candidates = self._candidates(last_ref, current_ref, branch)
        commits_pushed = len(candidates)
        commit_ids, new_patch_ids = self._deduplicate(candidates, patch_store.get_set(remote_url))

        commits = [self._describe(commit_id) for commit_id in commit_ids]
        logger.debug(
            f"Push to {remote_url} {branch}: {commits_pushed} pushed, {len(commits)} counted"
        )
        return DetectionResult(
            outcome=DetectionOutcome.PUSH,
            push=PushEvent(commits=commits, remote_url=remote_url, branch=branch),
            remote_url=remote_url,
            current_ref=current_ref,
            new_patch_ids=new_patch_ids,
            commits_pushed=commits_pushed,
        )

    def _candidates(self, last_ref: Optional[str], current_ref: str, branch: str) -> List[str]:
        if last_ref is None:
            # Unknown remote: credit the tip only, not the whole history
            return [current_ref]

        commit_ids = self.vcs.commit_range(last_ref, current_ref)
        if commit_ids is None:
            logger.warning(f"Could not list {last_ref}..{current_ref}, counting one commit")
            return [current_ref]

        # Commits already on another remote branch were credited (or not) there
        unique = self.vcs.unique_commits(last_ref, current_ref, branch)
        if unique is None:
            logger.warning(f"Could not check {last_ref}..{current_ref} against other branches")
            return []
        unique_ids = set(unique)
        return [commit_id for commit_id in commit_ids if commit_id in unique_ids]

    def _deduplicate(self, candidates: List[str], seen: Set[str]):
        """Drop commits whose patch-id was credited before (or earlier in this push)."""
        kept: List[str] = []
        new_patch_ids: List[str] = []
        for commit_id in candidates:
            patch_id = self.vcs.patch_id(commit_id)
            if patch_id is None:
                kept.append(commit_id)
                continue
            if patch_id in seen:
                logger.debug(f"{commit_id} has a known patch-id {patch_id}, skipped")
                continue
            seen.add(patch_id)
            new_patch_ids.append(patch_id)
            kept.append(commit_id)
        return kept, new_patch_ids

    def _describe(self, commit_id: str) -> Commit:
        commit = self.vcs.commit(commit_id)
        if commit is None:
            return Commit(id=commit_id, lines_changed=0, timestamp=self.clock.now)
        return commit

    def record(self, result: DetectionResult, ref_store: RefStore,
               patch_store: PatchIdStore, history: PushHistory,
               clock: Optional[Clock] = None) -> None:
        """Persist a scored push into the stores (in memory)."""
        if not result.is_push:
            return
        clock = clock or self.clock
        push = result.push
        ref_store.set(push.remote_url, result.current_ref)
        patch_store.record(push.remote_url, result.new_patch_ids)
        history.add(PushHistoryEntry(
            timestamp=clock.now,
            remote_url=push.remote_url,
            branch=push.branch,
            commits=push.commit_count,
        ))

    def follow_fetch(self, result: DetectionResult, ref_store: RefStore) -> bool:
        """Move the stored ref to a fetched one. Returns whether it changed.

        A later fast-forward of the local branch (the second half of a
        pull) then compares equal instead of crediting the fetched commits.
        """
        if result.outcome is not DetectionOutcome.FETCH or not result.current_ref:
            return False
        if ref_store.get(result.remote_url) == result.current_ref:
            return False
        ref_store.set(result.remote_url, result.current_ref)
        logger.debug(f"Fetched {result.remote_url} at {result.current_ref}")
        return True

    def snapshot(self, ref_store: RefStore) -> bool:
        """Remember the current remote ref so older commits are never credited."""
        if self.vcs is None:
            return False
        remote_url = self.vcs.remote_url()
        branch = self.tracked_branch() if remote_url else None
        current_ref = self.vcs.ref_of(branch, remote=True) if branch else None
        if current_ref is None:
            logger.debug("Nothing to snapshot")
            return False
        ref_store.set(remote_url, current_ref)
        logger.info(f"Snapshot {remote_url} {branch} at {current_ref}")
        return True


__all__ = ["PushDetector"]
