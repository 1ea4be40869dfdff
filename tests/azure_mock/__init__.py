"""Azure Automation API mock for testing.

Provides an in-memory Automation control plane so reconcilers can be
exercised without Azure connectivity.

Key Features:
- Accounts, credentials, runbooks and schedules keyed case-insensitively
- ResourceNotFoundError for missing resources, like the real SDK
- Failure injection per operation group and method
- Call recording for assertions on the exact addresses used

Usage:
    from azure_mock import MockAutomationClient

    client = MockAutomationClient()
    client.state.add_account("rg-ops", "aa-ops")
    reconciler = RunbookReconciler(client.runbook)
"""

from .automation import (
    DEFAULT_SUBSCRIPTION_ID,
    MockAutomationClient,
    MockAutomationState,
    MockContentLink,
    MockRunbook,
    MockSchedule,
)
from .context import MockAzureContext
from .credential import MockManagedIdentityCredential, create_mock_credential

__all__ = [
    "DEFAULT_SUBSCRIPTION_ID",
    "MockAutomationClient",
    "MockAutomationState",
    "MockAzureContext",
    "MockContentLink",
    "MockManagedIdentityCredential",
    "MockRunbook",
    "MockSchedule",
    "create_mock_credential",
]
