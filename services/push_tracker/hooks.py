"""
Git hook installation.

``party init`` installs a ``reference-transaction`` hook that calls
``party hook`` whenever git updates refs (including remote-tracking refs
after a push). ``party uninit`` only removes a hook whose content is
exactly what we installed.
"""

import logging
import os
import stat
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

HOOK_NAME = "reference-transaction"
GIT_HOOK_SCRIPT = '#!/bin/sh\nparty hook "$@"\n'


class UninstallResult(Enum):
    REMOVED = "removed"
    NOT_INSTALLED = "not_installed"
    MANUAL_REMOVAL_REQUIRED = "manual_removal_required"


def git_hook_path(git_dir: Path) -> Path:
    return Path(git_dir) / "hooks" / HOOK_NAME


def install_git_hook(git_dir: Path) -> Path:
    """Write the hook script and make it executable."""
    path = git_hook_path(git_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(GIT_HOOK_SCRIPT, encoding="utf-8")
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info(f"Installed {path}")
    return path


def uninstall_git_hook(git_dir: Path) -> UninstallResult:
    path = git_hook_path(git_dir)
    if not path.exists():
        return UninstallResult.NOT_INSTALLED

    if path.read_text(encoding="utf-8") != GIT_HOOK_SCRIPT:
        logger.info(f"{path} was modified, leaving it in place")
        return UninstallResult.MANUAL_REMOVAL_REQUIRED

    path.unlink()
    logger.info(f"Removed {path}")
    return UninstallResult.REMOVED


__all__ = [
    "HOOK_NAME", "GIT_HOOK_SCRIPT", "UninstallResult",
    "git_hook_path", "install_git_hook", "uninstall_git_hook",
]
