"""Wiring between the Azure Automation SDK client and the reconcilers."""

from __future__ import annotations

from typing import Any

from azure.mgmt.automation import AutomationClient

from .config import Config
from .models import ResourceKind
from .reconcilers import (
    AccountReconciler,
    CredentialReconciler,
    Reconciler,
    RunbookReconciler,
    ScheduleReconciler,
)
from .security import get_managed_identity_credential


def create_automation_client(config: Config) -> AutomationClient:
    """Build an AutomationClient authenticated with a managed identity.

    Raises:
        SecretlessViolationError: If credential secrets are in the environment.
    """
    credential = get_managed_identity_credential(config.client_id)
    return AutomationClient(
        credential=credential,
        subscription_id=config.subscription_id,
    )


def build_reconcilers(client: Any) -> dict[ResourceKind, Reconciler]:
    """Bind each reconciler to its operation group on ``client``."""
    return {
        ResourceKind.ACCOUNT: AccountReconciler(client.automation_account),
        ResourceKind.CREDENTIAL: CredentialReconciler(client.credential),
        ResourceKind.RUNBOOK: RunbookReconciler(client.runbook),
        ResourceKind.SCHEDULE: ScheduleReconciler(client.schedule),
    }
