"""Configuration management with validation.

All settings come from environment variables and are validated when the
Config is constructed, so a bad environment fails before any Azure call.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Security constraints - enforced limits to prevent abuse
MAX_MANIFEST_FILE_SIZE_BYTES = 256 * 1024
MAX_STATE_FILE_SIZE_BYTES = 1024 * 1024

DEFAULT_STATE_DIR = ".automation-state"
DEFAULT_LOG_LEVEL = "INFO"

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Runtime configuration loaded from environment variables.

    Invalid configurations raise ConfigurationError immediately, listing
    every problem at once.
    """

    subscription_id: str

    # User-assigned managed identity; system-assigned when None
    client_id: str | None = None

    state_dir: Path = field(default_factory=lambda: Path(DEFAULT_STATE_DIR))

    log_level: str = DEFAULT_LOG_LEVEL
    json_logging: bool = True

    def __post_init__(self) -> None:
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}")

        if self.state_dir.exists() and not self.state_dir.is_dir():
            errors.append(f"STATE_DIR is not a directory: {self.state_dir}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Subscription holding the automation accounts
            AZURE_CLIENT_ID: Client ID of a user-assigned managed identity (optional)
            STATE_DIR: Directory for persisted resource state (default: .automation-state)
            LOG_LEVEL: Logging level (default: INFO)
            ENABLE_JSON_LOGGING: Emit JSON log lines (default: true)
        """

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            state_dir=Path(os.environ.get("STATE_DIR", DEFAULT_STATE_DIR)),
            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL),
            json_logging=get_bool("ENABLE_JSON_LOGGING", True),
        )
