"""
Git access for push detection.

This module provides the VCS primitives the detector relies on:
- Remote URL, trunk branch and ref lookups
- Commit ranges, commit stats and commits unique to the tracked branch
- Stable patch-ids (``git show <c> | git patch-id --stable``)

Every git failure is turned into ``None``, so callers never see GitPython
exceptions.
"""

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Union

from git import Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import BadName, BadObject, GitError

from config.settings import Settings, get_settings
from shared.events import Commit

logger = logging.getLogger(__name__)

GIT_ERRORS = (GitError, BadName, BadObject, ValueError, OSError)

TRACKED_BRANCH_SECTION = "party"
TRACKED_BRANCH_OPTION = "branch"


class VCS(Protocol):
    """Primitive operations push detection needs from a repository."""

    def remote_url(self) -> Optional[str]: ...

    def configured_branch(self) -> Optional[str]: ...

    def trunk_branch(self) -> Optional[str]: ...

    def ref_of(self, branch: str, remote: bool) -> Optional[str]: ...

    def commit_range(self, old: str, new: str) -> Optional[List[str]]: ...

    def commit(self, commit_id: str) -> Optional[Commit]: ...

    def remote_branches(self) -> Optional[List[str]]: ...

    def unique_commits(self, old: str, new: str, branch: str) -> Optional[List[str]]: ...

    def patch_id(self, commit_id: str) -> Optional[str]: ...


class GitVCS:
    """VCS primitives backed by GitPython."""

    def __init__(self, repo: Repo, settings: Optional[Settings] = None):
        self.repo = repo
        self.settings = settings or get_settings()
        self.remote = self.settings.detection.remote_name
        self.timeout = self.settings.detection.git_timeout

    @classmethod
    def open(cls, path: Union[str, Path, None] = None,
             settings: Optional[Settings] = None) -> Optional["GitVCS"]:
        """Open the repository containing ``path`` (default: cwd), or None."""
        try:
            repo = Repo(path or Path.cwd(), search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            logger.debug(f"Not a git repository: {e}")
            return None
        return cls(repo, settings)

    @property
    def git_dir(self) -> Path:
        return Path(self.repo.git_dir)

    def _git(self, command: str, *args, **kwargs) -> Optional[str]:
        """Run ``git <command> <args>``; None when git fails."""
        try:
            method = getattr(self.repo.git, command)
            return method(*args, kill_after_timeout=self.timeout, **kwargs)
        except GIT_ERRORS as e:
            logger.debug(f"git {command} {' '.join(map(str, args))} failed: {e}")
            return None

    def remote_url(self) -> Optional[str]:
        url = self._git("remote", "get-url", self.remote)
        if url is None:
            return None
        return url.strip() or None

    def configured_branch(self) -> Optional[str]:
        """Branch chosen with ``party init --branch``, stored in the repo config."""
        value = self._git("config", "--get", f"{TRACKED_BRANCH_SECTION}.{TRACKED_BRANCH_OPTION}")
        if value is None:
            return None
        return value.strip() or None

    def set_tracked_branch(self, branch: str) -> None:
        with self.repo.config_writer() as writer:
            writer.set_value(TRACKED_BRANCH_SECTION, TRACKED_BRANCH_OPTION, branch)
        logger.info(f"Tracking branch {branch}")

    def trunk_branch(self) -> Optional[str]:
        """The remote's default branch, else the first trunk candidate it has."""
        prefix = f"refs/remotes/{self.remote}/"
        head = self._git("symbolic_ref", "--quiet", f"{prefix}HEAD")
        if head and head.strip().startswith(prefix):
            return head.strip()[len(prefix):]

        for candidate in self.settings.detection.trunk_candidates:
            if self.ref_of(candidate, remote=True):
                return candidate
        return None

    def ref_of(self, branch: str, remote: bool) -> Optional[str]:
        ref = f"refs/remotes/{self.remote}/{branch}" if remote else f"refs/heads/{branch}"
        sha = self._git("rev_parse", "--verify", "--quiet", ref)
        if sha is None:
            return None
        return sha.strip() or None

    def commit_range(self, old: str, new: str) -> Optional[List[str]]:
        """Commits reachable from ``new`` but not ``old``, newest first."""
        output = self._git("rev_list", f"{old}..{new}")
        if output is None:
            return None
        return [line.strip() for line in output.splitlines() if line.strip()]

    def commit(self, commit_id: str) -> Optional[Commit]:
        """Size (insertions + deletions) and committer time of a commit."""
        try:
            git_commit = self.repo.commit(commit_id)
            totals = git_commit.stats.total
            return Commit(
                id=git_commit.hexsha,
                lines_changed=totals.get("insertions", 0) + totals.get("deletions", 0),
                timestamp=max(0, int(git_commit.committed_date)),
            )
        except GIT_ERRORS as e:
            logger.debug(f"Could not read commit {commit_id}: {e}")
            return None

    def remote_branches(self) -> Optional[List[str]]:
        """Branch names under refs/remotes/<remote>/, without HEAD."""
        prefix = f"refs/remotes/{self.remote}/"
        output = self._git("for_each_ref", "--format=%(refname)", prefix)
        if output is None:
            return None
        branches = []
        for line in output.splitlines():
            refname = line.strip()
            if refname.startswith(prefix) and refname != f"{prefix}HEAD":
                branches.append(refname[len(prefix):])
        return branches

    def unique_commits(self, old: str, new: str, branch: str) -> Optional[List[str]]:
        """Commits in ``old..new`` that no other remote branch contains, newest first.

        One ``rev-list`` with every other remote-tracking branch negated.
        """
        branches = self.remote_branches()
        if branches is None:
            return None
        others = [
            f"refs/remotes/{self.remote}/{name}" for name in branches if name != branch
        ]
        args = [f"{old}..{new}"]
        if others:
            args += ["--not", *others]
        output = self._git("rev_list", *args)
        if output is None:
            return None
        return [line.strip() for line in output.splitlines() if line.strip()]

    def patch_id(self, commit_id: str) -> Optional[str]:
        """Stable patch-id of a commit; None for diff-less commits or failures."""
        try:
            show = self.repo.git.show(commit_id, as_process=True)
            output = self.repo.git.patch_id(
                "--stable", istream=show.proc.stdout, kill_after_timeout=self.timeout
            )
            show.wait()
        except GIT_ERRORS as e:
            logger.debug(f"patch-id for {commit_id} failed: {e}")
            return None
        parts = output.split()
        return parts[0] if parts else None


__all__ = ["VCS", "GitVCS"]
