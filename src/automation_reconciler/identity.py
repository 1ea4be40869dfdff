"""Azure resource ID parsing.

Resource IDs are always issued by the service and parsed here; this module
never composes one locally. Azure resource IDs follow the pattern:

    /subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{type}/{name}[/{childType}/{childName}]

The path after the leading slash is a sequence of key/value pairs.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import MalformedIdentityError, MissingSegmentError

# Segment keys the reconcilers look up
RESOURCE_GROUPS_KEY = "resourceGroups"
AUTOMATION_ACCOUNTS_KEY = "automationAccounts"
RUNBOOKS_KEY = "runbooks"
SCHEDULES_KEY = "schedules"
CREDENTIALS_KEY = "credentials"

KNOWN_SEGMENT_KEYS: frozenset[str] = frozenset({
    RESOURCE_GROUPS_KEY,
    AUTOMATION_ACCOUNTS_KEY,
    RUNBOOKS_KEY,
    SCHEDULES_KEY,
    CREDENTIALS_KEY,
})


@dataclass(frozen=True)
class ResourceId:
    """A parsed Azure resource ID."""

    raw: str
    subscription_id: str
    provider: str | None = None
    path: dict[str, str] = field(default_factory=dict)

    def segment(self, key: str) -> str:
        """Look up a named segment.

        Keys match exactly first. Known keys fall back to a case-insensitive
        match, because the service sometimes lowercases ``resourceGroups``.

        Raises:
            MissingSegmentError: If the segment is not present.
        """
        value = self.path.get(key)
        if value is not None:
            return value

        if key in KNOWN_SEGMENT_KEYS:
            wanted = key.lower()
            for candidate, candidate_value in self.path.items():
                if candidate.lower() == wanted:
                    return candidate_value

        raise MissingSegmentError(key, self.raw)

    @property
    def resource_group(self) -> str:
        """Resource group name (required)."""
        return self.segment(RESOURCE_GROUPS_KEY)

    @property
    def account_name(self) -> str:
        """Automation account name (required)."""
        return self.segment(AUTOMATION_ACCOUNTS_KEY)

    @property
    def resource_type(self) -> str | None:
        """Key of the last segment, i.e. the type of the addressed resource.

        ``.../automationAccounts/aa/runbooks/rb`` is a ``runbooks`` ID even
        though it also carries an ``automationAccounts`` segment.
        """
        if not self.path:
            return None
        return next(reversed(self.path))

    def is_type(self, key: str) -> bool:
        """Check whether the ID addresses a resource of type ``key`` (case-insensitive)."""
        resource_type = self.resource_type
        return resource_type is not None and resource_type.lower() == key.lower()


def parse_resource_id(resource_id: str) -> ResourceId:
    """Parse an Azure resource ID into its named segments.

    Args:
        resource_id: Resource ID as returned by the service.

    Returns:
        ResourceId with subscription, provider namespace and remaining
        key/value segments.

    Raises:
        MalformedIdentityError: If the ID is empty or the segment count is odd.
        MissingSegmentError: If there is no ``subscriptions`` segment.
    """
    if not resource_id or not resource_id.strip("/"):
        raise MalformedIdentityError("Resource ID cannot be empty")

    components = resource_id.strip("/").split("/")
    if len(components) % 2 != 0:
        raise MalformedIdentityError(
            f"The number of path segments is not divisible by 2 in {resource_id!r}"
        )

    path: dict[str, str] = {}
    for i in range(0, len(components), 2):
        key = components[i]
        value = components[i + 1]
        if not key or not value:
            raise MalformedIdentityError(
                f"Key/value cannot be empty strings. Key: {key!r}, Value: {value!r}"
            )
        path[key] = value

    subscription_id = path.pop("subscriptions", None)
    if subscription_id is None:
        raise MissingSegmentError("subscriptions", resource_id)

    provider = path.pop("providers", None)

    return ResourceId(
        raw=resource_id,
        subscription_id=subscription_id,
        provider=provider,
        path=path,
    )
