"""Managed identity credential for the AutomationClient.

``azauto`` authenticates to the Automation management plane only as a
managed identity: system-assigned by default, user-assigned when
AZURE_CLIENT_ID is set. Any service principal secret, certificate or
user password found in the environment aborts the command (exit code 2)
before a client is built.

This is unrelated to AutomationCredential resources, whose passwords are
declared in manifests and sent to the service by the credential reconciler.
"""

from __future__ import annotations

import logging
import os

from azure.identity import ManagedIdentityCredential

logger = logging.getLogger(__name__)

# Variables azure-identity would pick up for secret-based sign-in
FORBIDDEN_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
)

SECRETLESS_VIOLATION_MESSAGE = (
    "SECURITY VIOLATION: {env_var} is set. azauto signs in to Azure Automation "
    "only with a managed identity; unset {env_var} and assign an identity to this host."
)


class SecretlessViolationError(Exception):
    """Raised when secret-based credentials are found in the environment."""

    pass


def enforce_secretless_architecture() -> None:
    """Check the environment before an AutomationClient is built.

    Raises:
        SecretlessViolationError: If any forbidden variable is set.
    """
    for env_var in FORBIDDEN_CREDENTIAL_ENV_VARS:
        if os.environ.get(env_var):
            logger.critical(
                "Secretless architecture violation",
                extra={"security_event": "credential_detected", "env_var": env_var},
            )
            raise SecretlessViolationError(SECRETLESS_VIOLATION_MESSAGE.format(env_var=env_var))


def get_managed_identity_credential(
    client_id: str | None = None,
) -> ManagedIdentityCredential:
    """Return the managed identity ``create_automation_client`` signs in with.

    Args:
        client_id: ``Config.client_id``; a user-assigned identity when set,
            otherwise the host's system-assigned identity.

    Raises:
        SecretlessViolationError: If credential environment variables detected.
    """
    enforce_secretless_architecture()

    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.info("Using system-assigned managed identity")
    return ManagedIdentityCredential()
