"""Persisted local state: the service-issued resource ID plus flattened fields.

The credential password is never written to disk; the declaration model
excludes it from serialization.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import MAX_STATE_FILE_SIZE_BYTES
from .errors import ConfigValidationError
from .models import ResourceConfig, ResourceKind, get_config_class

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class StateError(Exception):
    """Raised when a state file cannot be read or written."""

    pass


@dataclass(frozen=True)
class ResourceState:
    """Local view of one reconciled resource."""

    kind: ResourceKind
    id: str
    config: ResourceConfig

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": STATE_FORMAT_VERSION,
            "kind": self.kind.value,
            "id": self.id,
            "attributes": self.config.model_dump(mode="json"),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceState:
        """Rebuild state from its serialized form.

        Raises:
            StateError: If the data is not a valid state document.
        """
        try:
            kind = data["kind"]
            resource_id = data["id"]
            attributes = data["attributes"]
        except (KeyError, TypeError) as e:
            raise StateError(f"State document is missing a field: {e}") from e

        try:
            config_class = get_config_class(kind)
            config = config_class.from_declaration(attributes)
        except (ValueError, ConfigValidationError) as e:
            raise StateError(f"Invalid state document: {e}") from e

        return cls(kind=ResourceKind(kind), id=resource_id, config=config)


def state_key(kind: ResourceKind, config: ResourceConfig) -> str:
    """File name for a resource's state, derived from its declared address."""
    parts = [kind.value, config.resource_group_name, config.account, config.name]
    return ".".join(_UNSAFE_FILENAME_CHARS.sub("_", p) for p in parts) + ".json"


class StateStore:
    """Directory of JSON state files, one per resource."""

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    def _path_for(self, kind: ResourceKind, config: ResourceConfig) -> Path:
        return self._state_dir / state_key(kind, config)

    def save(self, state: ResourceState) -> Path:
        """Write state to disk, replacing any previous copy."""
        path = self._path_for(state.kind, state.config)
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(state.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
        except OSError as e:
            raise StateError(f"Failed to write state file {path}: {e}") from e

        logger.debug("Saved state to %s", path)
        return path

    def load(self, kind: ResourceKind, config: ResourceConfig) -> ResourceState | None:
        """Load the saved state for a declaration, or None if none exists."""
        path = self._path_for(kind, config)
        if not path.exists():
            return None
        return self._read(path)

    def find_by_id(self, resource_id: str) -> Path | None:
        """Locate the state file holding a given resource ID.

        Unreadable files are logged and skipped; they cannot hold the ID.
        """
        if not self._state_dir.is_dir():
            return None
        for path in sorted(self._state_dir.glob("*.json")):
            try:
                state = self._read(path)
            except StateError as e:
                logger.warning(
                    "Skipping unreadable state file",
                    extra={"state_file": str(path), "error": str(e)},
                )
                continue
            if state.id == resource_id:
                return path
        return None

    def remove(self, resource_id: str) -> bool:
        """Drop the state file for a resource ID.

        Returns:
            True if a file was removed.
        """
        path = self.find_by_id(resource_id)
        if path is None:
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StateError(f"Failed to remove state file {path}: {e}") from e
        logger.debug("Removed state file %s", path)
        return True

    def _read(self, path: Path) -> ResourceState:
        try:
            file_size = path.stat().st_size
        except OSError as e:
            raise StateError(f"Failed to stat state file {path}: {e}") from e

        if file_size > MAX_STATE_FILE_SIZE_BYTES:
            raise StateError(
                f"State file exceeds maximum size of {MAX_STATE_FILE_SIZE_BYTES} bytes: {path}"
            )

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StateError(f"Failed to read state file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise StateError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise StateError(f"State file must contain a JSON object: {path}")

        return ResourceState.from_dict(data)
