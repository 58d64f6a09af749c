"""
Shared pytest fixtures.

Provides isolated settings (state in a temporary directory) and a small
git sandbox: a bare "remote" plus a working clone with ``origin`` set up.
"""

import os
import shutil
from pathlib import Path

import pytest

# Let GitPython import on machines without git; git tests skip themselves
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

from git import Repo  # noqa: E402

from config.settings import Settings, StorageSettings, get_settings  # noqa: E402

GIT_AVAILABLE = shutil.which("git") is not None


class GitSandbox:
    """A working repository pushing to a local bare remote."""

    def __init__(self, root: Path, name: str = "work"):
        self.root = root
        self.remote_path = root / "remote.git"
        if not self.remote_path.exists():
            remote = Repo.init(self.remote_path, bare=True)
            remote.git.symbolic_ref("HEAD", "refs/heads/main")
            remote.close()

        self.path = root / name
        self.repo = Repo.init(self.path)
        self.repo.git.symbolic_ref("HEAD", "refs/heads/main")
        with self.repo.config_writer() as writer:
            writer.set_value("user", "name", "Test")
            writer.set_value("user", "email", "test@test.com")
            writer.set_value("commit", "gpgsign", "false")
        self.repo.create_remote("origin", str(self.remote_path))
        self.counter = 0

    @property
    def remote_url(self) -> str:
        return str(self.remote_path)

    def commit(self, lines: int = 1, name: str = None, message: str = None) -> str:
        """Commit a new file with ``lines`` lines and return the sha."""
        self.counter += 1
        name = name or f"file{self.counter}.txt"
        (self.path / name).write_text("".join(f"line {i}\n" for i in range(lines)))
        self.repo.index.add([name])
        return self.repo.index.commit(message or f"commit {self.counter}").hexsha

    def push(self, branch: str = "main"):
        self.repo.git.push("origin", f"{branch}:{branch}")

    def close(self):
        self.repo.close()


@pytest.fixture
def state_dir(tmp_path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def settings(state_dir) -> Settings:
    """Settings with all state under a temporary directory."""
    return Settings(
        environment="testing",
        storage=StorageSettings(state_dir=str(state_dir)),
    )


@pytest.fixture
def party_env(state_dir, monkeypatch):
    """Point get_settings() at a temporary state directory."""
    monkeypatch.setenv("PARTY_STORAGE__STATE_DIR", str(state_dir))
    monkeypatch.setenv("PARTY_ENVIRONMENT", "testing")
    monkeypatch.delenv("PARTY_DETECTION__TRACKED_BRANCH", raising=False)
    get_settings.cache_clear()
    yield state_dir
    get_settings.cache_clear()


@pytest.fixture
def git_sandbox(tmp_path):
    """A repository with a local bare ``origin``. Skipped without git."""
    if not GIT_AVAILABLE:
        pytest.skip("git is not installed")
    sandbox = GitSandbox(tmp_path / "git")
    yield sandbox
    sandbox.close()
