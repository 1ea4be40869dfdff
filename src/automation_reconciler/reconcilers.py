"""Create/read/delete reconcilers for Automation resources.

Every reconciler follows the same contract:

CREATE OR UPDATE:
1. Expand the declaration into SDK parameters
2. Submit create_or_update (create and update are the same call)
3. Re-get by resource group + account + name to learn the resource ID
4. Read by that ID so local state reflects remote truth, not the echo

READ:
- Not-found means "absent" (None) and is not an error
- Any other failure is wrapped in RemoteCallError

DELETE:
- Not-found means "already deleted" and is success

Reconcilers hold no mutable state. The SDK operations object is handed in
by the caller and treated as a stateless capability.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from azure.core.exceptions import AzureError, ResourceNotFoundError

from .errors import (
    IdentityMissingError,
    MalformedIdentityError,
    RemoteCallError,
    RemoteContractError,
)
from .identity import (
    AUTOMATION_ACCOUNTS_KEY,
    CREDENTIALS_KEY,
    RUNBOOKS_KEY,
    SCHEDULES_KEY,
    ResourceId,
    parse_resource_id,
)
from .models import (
    AccountConfig,
    CredentialConfig,
    ResourceConfig,
    ResourceKind,
    RunbookConfig,
    ScheduleConfig,
)
from .state import ResourceState

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404


def is_not_found(error: AzureError) -> bool:
    """Check whether an azure-core error means the resource does not exist."""
    if isinstance(error, ResourceNotFoundError):
        return True
    return getattr(error, "status_code", None) == HTTP_NOT_FOUND


class Reconciler:
    """Base reconciler; subclasses bind a declaration class and ID segment."""

    config_class: ClassVar[type[ResourceConfig]]
    label: ClassVar[str]
    name_segment: ClassVar[str]

    def __init__(self, operations: Any) -> None:
        """Initialize with the SDK operation group for this resource kind.

        Args:
            operations: Object exposing get, create_or_update and delete,
                e.g. ``AutomationClient(...).runbook``.
        """
        self._operations = operations

    @property
    def kind(self) -> ResourceKind:
        return self.config_class.kind

    def _address(self, resource_group: str, account_name: str, name: str) -> tuple[str, ...]:
        return (resource_group, account_name, name)

    def _address_from_id(self, resource_id: ResourceId) -> tuple[str, str, str]:
        """Recover (resource group, account, name) from an ID of this kind.

        Raises:
            MissingSegmentError: If a required segment is absent.
            MalformedIdentityError: If the ID addresses another resource type,
                e.g. a runbook ID handed to the account reconciler.
        """
        address = (
            resource_id.resource_group,
            resource_id.account_name,
            resource_id.segment(self.name_segment),
        )
        if not resource_id.is_type(self.name_segment):
            raise MalformedIdentityError(
                f"Resource ID addresses '{resource_id.resource_type}', "
                f"not an Automation {self.label}: {resource_id.raw!r}"
            )
        return address

    def _remote_error(
        self,
        operation: str,
        name: str,
        resource_group: str,
        error: Exception,
    ) -> RemoteCallError:
        logger.error(
            f"Automation {self.label} {operation} failed",
            extra={
                "kind": self.kind.value,
                "operation": operation,
                "resource_name": name,
                "resource_group": resource_group,
                "error_type": type(error).__name__,
            },
        )
        return RemoteCallError(self.label, operation, name, resource_group, error)

    def create_or_update(self, config: ResourceConfig) -> ResourceState:
        """Create or update the remote resource from a declaration.

        Args:
            config: Validated declaration of this reconciler's kind.

        Returns:
            State carrying the service-issued resource ID and the declaration
            as re-read from the service.

        Raises:
            ConfigValidationError: If a write-only value is missing.
            RemoteCallError: If the submit or the follow-up get fails.
            IdentityMissingError: If the service returned no resource ID.
        """
        if not isinstance(config, self.config_class):
            raise TypeError(
                f"{type(self).__name__} expects {self.config_class.__name__}, "
                f"got {type(config).__name__}"
            )

        name = config.name
        resource_group = config.resource_group_name
        address = self._address(resource_group, config.account, name)
        parameters = config.expand()

        logger.info(
            f"Submitting Automation {self.label}",
            extra={
                "kind": self.kind.value,
                "resource_name": name,
                "resource_group": resource_group,
                "account_name": config.account,
            },
        )

        try:
            self._operations.create_or_update(*address, parameters)
        except AzureError as e:
            raise self._remote_error("create_or_update", name, resource_group, e) from e

        try:
            remote = self._operations.get(*address)
        except AzureError as e:
            raise self._remote_error("get", name, resource_group, e) from e

        resource_id = getattr(remote, "id", None)
        if not resource_id:
            raise IdentityMissingError(self.label, name, resource_group)

        state = self.read(resource_id, prior=config)
        if state is None:
            raise RemoteContractError(
                f"Automation {self.label} '{name}' (resource group {resource_group}) "
                "disappeared right after it was created"
            )

        logger.info(
            f"Automation {self.label} reconciled",
            extra={"kind": self.kind.value, "resource_id": resource_id},
        )
        return state

    def read(
        self,
        resource_id: str,
        prior: ResourceConfig | None = None,
    ) -> ResourceState | None:
        """Read remote state by resource ID.

        Args:
            resource_id: ID previously issued by the service.
            prior: Locally held declaration, used only for values the service
                never returns (the credential password).

        Returns:
            Flattened state, or None if the resource no longer exists.

        Raises:
            MalformedIdentityError: If the ID cannot be parsed or addresses
                another resource type.
            MissingSegmentError: If the ID lacks a required segment.
            RemoteCallError: On any failure other than not-found.
        """
        parsed = parse_resource_id(resource_id)
        resource_group, account_name, name = self._address_from_id(parsed)

        try:
            remote = self._operations.get(*self._address(resource_group, account_name, name))
        except AzureError as e:
            if is_not_found(e):
                logger.info(
                    f"Automation {self.label} not found, treating as absent",
                    extra={"kind": self.kind.value, "resource_id": resource_id},
                )
                return None
            raise self._remote_error("read", name, resource_group, e) from e

        config = self.config_class.flatten(remote, parsed, prior)
        return ResourceState(kind=self.kind, id=resource_id, config=config)

    def delete(self, resource_id: str) -> None:
        """Delete the remote resource. Deleting an absent resource succeeds.

        Raises:
            MalformedIdentityError: If the ID cannot be parsed or addresses
                another resource type.
            MissingSegmentError: If the ID lacks a required segment.
            RemoteCallError: On any failure other than not-found.
        """
        parsed = parse_resource_id(resource_id)
        resource_group, account_name, name = self._address_from_id(parsed)

        try:
            self._operations.delete(*self._address(resource_group, account_name, name))
        except AzureError as e:
            if is_not_found(e):
                logger.info(
                    f"Automation {self.label} already absent",
                    extra={"kind": self.kind.value, "resource_id": resource_id},
                )
                return
            raise self._remote_error("delete", name, resource_group, e) from e

        logger.info(
            f"Automation {self.label} deleted",
            extra={"kind": self.kind.value, "resource_id": resource_id},
        )


class AccountReconciler(Reconciler):
    """Reconciles automation accounts (addressed by resource group + name)."""

    config_class = AccountConfig
    label = "Account"
    name_segment = AUTOMATION_ACCOUNTS_KEY

    def _address(self, resource_group: str, account_name: str, name: str) -> tuple[str, ...]:
        # Accounts are top-level: account_name and name are the same value
        return (resource_group, name)


class CredentialReconciler(Reconciler):
    """Reconciles automation credentials."""

    config_class = CredentialConfig
    label = "Credential"
    name_segment = CREDENTIALS_KEY


class RunbookReconciler(Reconciler):
    """Reconciles runbooks.

    Delete addresses the runbook by its own name, never by the account name.
    """

    config_class = RunbookConfig
    label = "Runbook"
    name_segment = RUNBOOKS_KEY


class ScheduleReconciler(Reconciler):
    """Reconciles schedules."""

    config_class = ScheduleConfig
    label = "Schedule"
    name_segment = SCHEDULES_KEY
