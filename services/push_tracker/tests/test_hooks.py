"""
Tests for git hook installation and removal.
"""

import os

from services.push_tracker.hooks import (
    GIT_HOOK_SCRIPT, HOOK_NAME, UninstallResult, git_hook_path,
    install_git_hook, uninstall_git_hook,
)


class TestInstall:
    """install_git_hook"""

    def test_writes_script(self, tmp_path):
        path = install_git_hook(tmp_path)

        assert path == tmp_path / "hooks" / HOOK_NAME
        assert path.read_text() == GIT_HOOK_SCRIPT
        assert os.access(path, os.X_OK)

    def test_script_passes_arguments(self):
        assert GIT_HOOK_SCRIPT == '#!/bin/sh\nparty hook "$@"\n'

    def test_reinstall_overwrites(self, tmp_path):
        git_hook_path(tmp_path).parent.mkdir(parents=True)
        git_hook_path(tmp_path).write_text("old")

        install_git_hook(tmp_path)

        assert git_hook_path(tmp_path).read_text() == GIT_HOOK_SCRIPT


class TestUninstall:
    """uninstall_git_hook"""

    def test_removes_our_hook(self, tmp_path):
        install_git_hook(tmp_path)

        assert uninstall_git_hook(tmp_path) is UninstallResult.REMOVED
        assert not git_hook_path(tmp_path).exists()

    def test_not_installed(self, tmp_path):
        assert uninstall_git_hook(tmp_path) is UninstallResult.NOT_INSTALLED

    def test_modified_hook_is_left_alone(self, tmp_path):
        path = install_git_hook(tmp_path)
        path.write_text(GIT_HOOK_SCRIPT + "echo custom\n")

        assert uninstall_git_hook(tmp_path) is UninstallResult.MANUAL_REMOVAL_REQUIRED
        assert path.exists()
