"""Exception hierarchy for Automation resource reconciliation.

Not-found responses from the service are NOT represented here: read and
delete absorb them and report "absent" / "already deleted" instead.
Everything below is fatal and never retried by this package.
"""

from __future__ import annotations


class AutomationReconcilerError(Exception):
    """Base class for all reconciliation errors."""

    pass


class MalformedIdentityError(AutomationReconcilerError):
    """Raised when a resource ID is empty or has an odd number of segments."""

    pass


class MissingSegmentError(AutomationReconcilerError):
    """Raised when a required segment is absent from a parsed resource ID."""

    def __init__(self, key: str, resource_id: str) -> None:
        self.key = key
        self.resource_id = resource_id
        super().__init__(f"No '{key}' segment found in resource ID: {resource_id!r}")


class ConfigValidationError(AutomationReconcilerError):
    """Raised when a declared resource configuration is invalid.

    Covers malformed single-block fields (zero or several elements),
    unknown enum values, missing write-only values and bad manifests.
    """

    pass


class RemoteCallError(AutomationReconcilerError):
    """Wraps a failed Azure API call with resource context.

    The original azure-core exception is kept as ``__cause__``.
    """

    def __init__(
        self,
        kind: str,
        operation: str,
        name: str,
        resource_group: str,
        cause: Exception,
    ) -> None:
        self.kind = kind
        self.operation = operation
        self.name = name
        self.resource_group = resource_group
        super().__init__(
            f"Error issuing {operation} request for Automation {kind} '{name}' "
            f"(resource group {resource_group}): {cause}"
        )


class RemoteContractError(AutomationReconcilerError):
    """Raised when the service answers with a shape it should never produce."""

    pass


class IdentityMissingError(RemoteContractError):
    """Raised when create-or-update succeeded but no resource ID came back."""

    def __init__(self, kind: str, name: str, resource_group: str) -> None:
        self.kind = kind
        self.name = name
        self.resource_group = resource_group
        super().__init__(
            f"Cannot read Automation {kind} '{name}' (resource group {resource_group}) ID"
        )
