"""
Configuration management for Post-Push Party.

This module provides centralized configuration with:
- Environment-driven settings (PARTY_ prefix, nested with __)
- Type validation and defaults
- Local state directory and store file locations
- Push detection knobs (remote, tracked branch, git timeouts)
- Logging configuration for quiet hook runs
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional, List, Dict, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import BaseSettings as PydanticBaseSettings


def _default_state_dir() -> str:
    return str(Path.home() / ".post-push-party")


class StorageSettings(BaseSettings):
    """Local state storage settings."""

    state_dir: str = Field(
        default_factory=_default_state_dir, description="Directory holding all local state"
    )
    refs_file: str = Field(default="refs.json", description="Last known ref per remote")
    patch_ids_file: str = Field(default="patch_ids.json", description="Seen patch-ids per remote")
    history_file: str = Field(default="history.json", description="Push history log")
    state_file: str = Field(default="state.json", description="Points balance and unlock levels")
    patch_id_limit: int = Field(default=500, ge=1, description="Patch-ids kept per remote")

    @field_validator("state_dir")
    @classmethod
    def expand_state_dir(cls, v):
        return str(Path(os.path.expanduser(v)))

    @field_validator("refs_file", "patch_ids_file", "history_file", "state_file")
    @classmethod
    def validate_file_name(cls, v):
        if not v or "/" in v or "\\" in v:
            raise ValueError("Store file names must be plain file names")
        return v

    def path_for(self, file_name: str) -> Path:
        """Resolve a store file name inside the state directory."""
        return Path(self.state_dir) / file_name


class DetectionSettings(BaseSettings):
    """Push detection settings."""

    remote_name: str = Field(default="origin", description="Remote whose pushes are tracked")
    tracked_branch: Optional[str] = Field(
        default=None, description="Branch to credit (defaults to the remote's trunk)"
    )
    trunk_candidates: List[str] = Field(
        default=["main", "master"], description="Branches tried when the remote has no HEAD"
    )
    git_timeout: float = Field(default=10.0, gt=0, description="Seconds allowed per git call")

    @field_validator("remote_name")
    @classmethod
    def validate_remote_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Remote name cannot be empty")
        return v.strip()

    @field_validator("trunk_candidates")
    @classmethod
    def validate_trunk_candidates(cls, v):
        if not v:
            raise ValueError("At least one trunk candidate is required")
        return v


class MonitoringSettings(BaseSettings):
    """Logging configuration settings."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(
        default="debug.log", description="Log file name inside the state directory"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class Settings(PydanticBaseSettings):
    """
    Main application settings.

    Every field can be overridden from the environment, e.g.
    PARTY_STORAGE__STATE_DIR=/tmp/party or PARTY_DETECTION__TRACKED_BRANCH=develop.
    """

    app_name: str = Field(default="Post-Push Party", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    storage: StorageSettings = Field(default_factory=StorageSettings)
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_environments = ["development", "testing", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    model_config = {
        "env_prefix": "PARTY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration object

    Example:
        >>> settings = get_settings()
        >>> print(settings.storage.state_dir)
    """
    return Settings()


def configure_logging(settings: Optional[Settings] = None, verbose: bool = False) -> None:
    """
    Route log records to the state-dir debug log.

    Hooks run inside the user's terminal session, so records go to a file
    unless ``verbose`` asks for them on stderr as well.
    """
    settings = settings or get_settings()
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose or settings.debug else settings.monitoring.log_level)
    formatter = logging.Formatter(settings.monitoring.log_format)

    for handler in list(root.handlers):
        if getattr(handler, "_party_handler", False):
            root.removeHandler(handler)
            handler.close()

    handlers: List[logging.Handler] = []
    if settings.monitoring.log_file:
        log_path = settings.storage.path_for(settings.monitoring.log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
        except OSError:
            # Unwritable state dir: fall through to stderr-only (or nothing)
            pass
    if verbose:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._party_handler = True
        root.addHandler(handler)


def validate_configuration(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Validate configuration settings and return validation results.

    Returns:
        Dict[str, Any]: Validation results with status and errors
    """
    settings = settings or get_settings()
    errors = []
    warnings = []

    state_dir = Path(settings.storage.state_dir)
    if state_dir.exists() and not state_dir.is_dir():
        errors.append(f"State directory is not a directory: {state_dir}")
    elif state_dir.exists() and not os.access(state_dir, os.W_OK):
        errors.append(f"State directory is not writable: {state_dir}")
    elif not state_dir.exists():
        warnings.append(f"State directory will be created on first save: {state_dir}")

    if settings.detection.tracked_branch is None:
        warnings.append("No tracked branch configured, the remote trunk will be detected")

    if settings.environment == "production" and settings.debug:
        errors.append("Debug mode cannot be enabled in production")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "environment": settings.environment,
    }


def export_config(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Export configuration for display and debugging."""
    settings = settings or get_settings()
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "storage": {
            "state_dir": settings.storage.state_dir,
            "patch_id_limit": settings.storage.patch_id_limit,
        },
        "detection": {
            "remote_name": settings.detection.remote_name,
            "tracked_branch": settings.detection.tracked_branch,
            "trunk_candidates": settings.detection.trunk_candidates,
            "git_timeout": settings.detection.git_timeout,
        },
        "monitoring": {
            "log_level": settings.monitoring.log_level,
            "log_file": settings.monitoring.log_file,
        },
    }


if __name__ == "__main__":
    """Configuration validation script."""
    import json

    validation = validate_configuration()

    print("Configuration Validation:")
    print(json.dumps(validation, indent=2))

    print("\nConfiguration Export:")
    print(json.dumps(export_config(), indent=2))

    if not validation["valid"]:
        exit(1)
