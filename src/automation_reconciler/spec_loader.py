"""Manifest loading with validation.

A manifest declares one resource:

    apiVersion: automation-reconciler/v1
    kind: AutomationRunbook
    metadata:
      name: nightly-cleanup
    spec:
      name: nightly-cleanup
      accountName: aa-ops
      ...

SECURITY: File size is checked before reading and YAML is parsed with
safe_load only.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import MAX_MANIFEST_FILE_SIZE_BYTES
from .errors import ConfigValidationError
from .models import ResourceConfig, get_config_class

logger = logging.getLogger(__name__)


class ManifestLoadError(ConfigValidationError):
    """Raised when a manifest cannot be read or is not shaped like one."""

    pass


def load_manifest(path: Path) -> ResourceConfig:
    """Load and validate a resource manifest from YAML.

    Args:
        path: Manifest file.

    Returns:
        Validated declaration of the manifest's kind.

    Raises:
        ManifestLoadError: If the file cannot be read or lacks kind/spec.
        ConfigValidationError: If the spec fails validation.
    """
    if not path.exists():
        raise ManifestLoadError(f"Manifest file not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ManifestLoadError(f"Failed to stat manifest file {path}: {e}") from e

    if file_size > MAX_MANIFEST_FILE_SIZE_BYTES:
        raise ManifestLoadError(
            f"Manifest file exceeds maximum size of {MAX_MANIFEST_FILE_SIZE_BYTES} bytes: {path}"
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestLoadError(f"Failed to read manifest file {path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise ManifestLoadError(f"Manifest must contain a YAML mapping: {path}")

    kind = raw_data.get("kind")
    if not kind:
        raise ManifestLoadError(f"Manifest has no 'kind': {path}")

    spec_data = raw_data.get("spec")
    if not isinstance(spec_data, dict):
        raise ManifestLoadError(f"Manifest 'spec' must be a mapping: {path}")

    try:
        config_class = get_config_class(kind)
    except ValueError as e:
        raise ManifestLoadError(str(e)) from e

    config = config_class.from_declaration(spec_data)

    logger.info("Loaded %s manifest '%s' from %s", kind, config.name, path)
    return config
