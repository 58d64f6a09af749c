"""
Local storage layer for Post-Push Party.

This module provides durable JSON-file storage with:
- Atomic saves (temp file + fsync + rename in the same directory)
- Lenient loads: missing, corrupt or invalid files yield default values
- One StateStorage facade over the ref, patch-id, history and player stores

No cross-process locking is done. Two hooks running at the same moment
may lose one update; each save is still all-or-nothing for readers.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config.settings import Settings, get_settings
from shared.models import PatchIdStore, PlayerState, PushHistory, RefStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class StorageError(Exception):
    """Raised when a store cannot be written."""

    def __init__(self, path: Path, cause: Exception):
        super().__init__(f"Could not save {path}: {cause}")
        self.path = path
        self.cause = cause


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` so readers see either the old or new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class JsonFileStore(Generic[M]):
    """A pydantic model persisted as one JSON file."""

    def __init__(self, path: Path, model: Type[M], factory: Optional[Callable[[], M]] = None):
        self.path = Path(path)
        self.model = model
        self.factory = factory or model

    def load(self) -> M:
        """Load the stored model, or a fresh default if that is not possible."""
        if not self.path.exists():
            logger.debug(f"{self.path} does not exist yet, using defaults")
            return self.factory()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            loaded = self.model.model_validate(raw)
        except (json.JSONDecodeError, ValidationError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"{self.path} could not be loaded ({e}), starting fresh")
            return self.factory()
        return self._adopt(loaded)

    def save(self, value: M) -> None:
        try:
            atomic_write_text(self.path, value.model_dump_json(indent=2))
        except OSError as e:
            raise StorageError(self.path, e) from e
        logger.debug(f"Saved {self.path}")

    def _adopt(self, loaded: M) -> M:
        # Carry runtime-only settings (excluded fields) from the default instance
        default = self.factory()
        extra = {
            name: getattr(default, name)
            for name, field in self.model.model_fields.items()
            if field.exclude
        }
        return loaded.model_copy(update=extra) if extra else loaded


class StateStorage:
    """Access to every durable store under the configured state directory."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        storage = self.settings.storage
        limit = storage.patch_id_limit

        self.refs = JsonFileStore(storage.path_for(storage.refs_file), RefStore)
        self.patch_ids = JsonFileStore(
            storage.path_for(storage.patch_ids_file),
            PatchIdStore,
            factory=lambda: PatchIdStore(limit=limit),
        )
        self.history = JsonFileStore(storage.path_for(storage.history_file), PushHistory)
        self.state = JsonFileStore(storage.path_for(storage.state_file), PlayerState)

    @property
    def state_dir(self) -> Path:
        return Path(self.settings.storage.state_dir)

    def load_refs(self) -> RefStore:
        return self.refs.load()

    def save_refs(self, refs: RefStore) -> None:
        self.refs.save(refs)

    def load_patch_ids(self) -> PatchIdStore:
        return self.patch_ids.load()

    def save_patch_ids(self, store: PatchIdStore) -> None:
        self.patch_ids.save(store)

    def load_history(self) -> PushHistory:
        return self.history.load()

    def save_history(self, history: PushHistory) -> None:
        self.history.save(history)

    def load_state(self) -> PlayerState:
        return self.state.load()

    def save_state(self, state: PlayerState) -> None:
        self.state.save(state)


__all__ = ["StorageError", "atomic_write_text", "JsonFileStore", "StateStorage"]
