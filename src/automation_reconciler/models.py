"""Pydantic models for declared Automation resources.

Each model owns both directions of the mapping:
1. ``expand()``: declaration -> Azure SDK create/update parameters
2. ``flatten()``: Azure SDK response -> declaration

Enum values are validated case-insensitively but sent to the service
verbatim, because the service compares them case-sensitively.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar

from azure.mgmt.automation.models import (
    AutomationAccountCreateOrUpdateParameters,
    ContentLink,
    CredentialCreateOrUpdateParameters,
    RunbookCreateOrUpdateParameters,
    ScheduleCreateOrUpdateParameters,
    Sku,
)
from pydantic import AliasChoices, BaseModel, Field, SecretStr, ValidationError, field_validator

from .errors import ConfigValidationError, RemoteContractError
from .identity import ResourceId

# =============================================================================
# Enumerations
# =============================================================================


class ResourceKind(str, Enum):
    """Manifest kinds handled by this package."""

    ACCOUNT = "AutomationAccount"
    CREDENTIAL = "AutomationCredential"
    RUNBOOK = "AutomationRunbook"
    SCHEDULE = "AutomationSchedule"


class SkuName(str, Enum):
    """Automation account SKU names."""

    FREE = "Free"
    BASIC = "Basic"


class RunbookType(str, Enum):
    """Runbook types accepted by the service."""

    GRAPH = "Graph"
    GRAPH_POWERSHELL = "GraphPowerShell"
    GRAPH_POWERSHELL_WORKFLOW = "GraphPowerShellWorkflow"
    POWERSHELL = "PowerShell"
    POWERSHELL_WORKFLOW = "PowerShellWorkflow"
    SCRIPT = "Script"


class ScheduleFrequency(str, Enum):
    """Schedule frequencies."""

    DAY = "Day"
    HOUR = "Hour"
    MONTH = "Month"
    ONE_TIME = "OneTime"
    WEEK = "Week"


# =============================================================================
# Helpers
# =============================================================================


def normalize_location(location: str) -> str:
    """Normalize an Azure region name ("West US" -> "westus")."""
    return location.replace(" ", "").lower()


def stable_hash(value: str) -> int:
    """Deterministic hash for a single-block field's identifying value.

    Python's built-in ``hash()`` is salted per process, so a truncated
    SHA-256 digest is used instead.
    """
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


def validate_choice(value: str, choices: type[Enum], field_name: str) -> str:
    """Check ``value`` against an enum case-insensitively, returning it unchanged."""
    valid = [c.value for c in choices]
    if value.lower() not in {v.lower() for v in valid}:
        raise ValueError(f"{field_name} must be one of {valid} (case-insensitive): {value}")
    return value


def unwrap_single_block(value: Any, field_name: str) -> Any:
    """Accept a block either as a mapping or as a list holding exactly one mapping."""
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise ValueError(f"{field_name} must contain exactly one block, got {len(value)}")
        return value[0]
    return value


def enum_value(value: Any) -> Any:
    """Unwrap SDK enum members to their plain string value."""
    if isinstance(value, Enum):
        return value.value
    return value


def encode_interval(frequency: str, interval: int) -> dict[str, int]:
    """Encode a schedule interval the way the service expects it.

    The service takes the interval as a single-entry mapping keyed by the
    lowercase frequency, e.g. ``Week``/2 -> ``{"week": 2}``.
    """
    return {frequency.lower(): interval}


def decode_interval(raw: Any, frequency: str) -> int:
    """Invert ``encode_interval``.

    A plain integer is accepted too, since some API versions answer with one.

    Raises:
        RemoteContractError: If the interval has any other shape.
    """
    if isinstance(raw, bool):
        raise RemoteContractError(f"Unexpected schedule interval: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, dict):
        if frequency.lower() in raw:
            value = raw[frequency.lower()]
        elif len(raw) == 1:
            value = next(iter(raw.values()))
        else:
            value = None
        if value is not None and not isinstance(value, bool):
            try:
                return int(value)
            except (TypeError, ValueError) as e:
                raise RemoteContractError(
                    f"Unexpected schedule interval for frequency '{frequency}': {raw!r}"
                ) from e
    raise RemoteContractError(
        f"Unexpected schedule interval for frequency '{frequency}': {raw!r}"
    )


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as one line per failing field."""
    lines = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        lines.append(f"  - {loc}: {item['msg']}")
    return "\n".join(lines)


# =============================================================================
# Single-block fields
# =============================================================================


class SkuBlock(BaseModel):
    """The ``sku`` block of an automation account."""

    model_config = {"extra": "forbid"}

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_choice(v, SkuName, "sku.name")

    @property
    def stable_hash(self) -> int:
        # Case-insensitive like the name itself
        return stable_hash(self.name.lower())


class ContentLinkBlock(BaseModel):
    """The ``publish_content_link`` block of a runbook."""

    model_config = {"extra": "forbid"}

    uri: Annotated[str, Field(min_length=1)]

    @property
    def stable_hash(self) -> int:
        return stable_hash(self.uri)


# =============================================================================
# Resource declarations
# =============================================================================


class ResourceConfig(BaseModel):
    """Common fields and behaviour of every declared resource."""

    model_config = {"extra": "forbid", "populate_by_name": True}  # Reject unknown fields

    kind: ClassVar[ResourceKind]

    # Fields whose change requires destroy and recreate
    force_new_fields: ClassVar[tuple[str, ...]] = ()

    # Fields compared case-insensitively locally
    case_insensitive_fields: ClassVar[frozenset[str]] = frozenset()

    # Optional fields the service fills in when the declaration leaves them out
    server_assigned_fields: ClassVar[frozenset[str]] = frozenset()

    name: Annotated[str, Field(min_length=1)]
    resource_group_name: Annotated[str, Field(min_length=1, alias="resourceGroupName")]

    @classmethod
    def from_declaration(cls, data: dict[str, Any]) -> ResourceConfig:
        """Validate a raw declaration.

        Raises:
            ConfigValidationError: If the declaration is invalid.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(
                f"Invalid {cls.kind.value} declaration:\n{format_validation_error(e)}"
            ) from e

    @classmethod
    def _from_remote(cls, data: dict[str, Any]) -> ResourceConfig:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise RemoteContractError(
                f"Service returned an unusable {cls.kind.value}:\n{format_validation_error(e)}"
            ) from e

    @property
    def account(self) -> str:
        """Name of the automation account this resource lives in."""
        raise NotImplementedError("Subclasses must implement account")

    def expand(self) -> Any:
        """Convert to the SDK create/update parameters model."""
        raise NotImplementedError("Subclasses must implement expand")

    @classmethod
    def flatten(
        cls,
        remote: Any,
        resource_id: ResourceId,
        prior: Any = None,
    ) -> ResourceConfig:
        """Convert an SDK response model back into a declaration.

        Args:
            remote: SDK model returned by ``get``.
            resource_id: Parsed ID the resource was read by.
            prior: Locally held declaration, for values the service never returns.
        """
        raise NotImplementedError("Subclasses must implement flatten")

    def changed_fields(self, other: ResourceConfig) -> list[str]:
        """List every field whose value differs from ``other``.

        ``other`` is the desired declaration. A server-assigned field that
        ``other`` leaves unset is not compared. A credential password held on
        only one side counts as a change; the service never returns it, so
        that difference is expected.
        """
        if type(other) is not type(self):
            raise TypeError(f"Cannot compare {type(self).__name__} with {type(other).__name__}")

        return [
            field_name
            for field_name in type(self).model_fields
            if not self._left_to_server(field_name, other)
            and self._comparable(field_name) != other._comparable(field_name)
        ]

    def _left_to_server(self, field_name: str, desired: ResourceConfig) -> bool:
        return field_name in self.server_assigned_fields and getattr(desired, field_name) is None

    def force_new_changes(self, other: ResourceConfig) -> list[str]:
        """List immutable fields whose values differ from ``other``."""
        changed = self.changed_fields(other)
        return [f for f in self.force_new_fields if f in changed]

    def _comparable(self, field_name: str) -> Any:
        value = getattr(self, field_name)
        if isinstance(value, (SkuBlock, ContentLinkBlock)):
            return value.stable_hash
        if isinstance(value, str) and field_name in self.case_insensitive_fields:
            return value.lower()
        return value


class AccountConfig(ResourceConfig):
    """Automation account declaration."""

    kind: ClassVar[ResourceKind] = ResourceKind.ACCOUNT
    force_new_fields: ClassVar[tuple[str, ...]] = (
        "name",
        "location",
        "resource_group_name",
        "sku",
    )

    location: Annotated[str, Field(min_length=1)]
    sku: SkuBlock
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        return normalize_location(v)

    @field_validator("sku", mode="before")
    @classmethod
    def validate_sku(cls, v: Any) -> Any:
        return unwrap_single_block(v, "sku")

    @property
    def account(self) -> str:
        return self.name

    def expand(self) -> AutomationAccountCreateOrUpdateParameters:
        return AutomationAccountCreateOrUpdateParameters(
            name=self.name,
            location=self.location,
            tags=self.tags,
            sku=Sku(name=self.sku.name),
        )

    @classmethod
    def flatten(
        cls,
        remote: Any,
        resource_id: ResourceId,
        prior: AccountConfig | None = None,  # noqa: ARG003 - uniform signature
    ) -> AccountConfig:
        sku = remote.sku
        return cls._from_remote({
            "name": remote.name,
            "location": remote.location or "",
            "resource_group_name": resource_id.resource_group,
            "sku": {"name": enum_value(sku.name)} if sku is not None else None,
            "tags": dict(remote.tags or {}),
        })


class CredentialConfig(ResourceConfig):
    """Automation credential declaration.

    ``password`` is write-only: the service never returns it, so a read
    carries the locally held value forward instead of overwriting it. The
    resulting drift is expected.
    """

    kind: ClassVar[ResourceKind] = ResourceKind.CREDENTIAL
    force_new_fields: ClassVar[tuple[str, ...]] = (
        "name",
        "account_name",
        "resource_group_name",
    )

    name: Annotated[
        str,
        Field(
            min_length=1,
            validation_alias=AliasChoices("name", "credential_name", "credentialName"),
        ),
    ]
    account_name: Annotated[str, Field(min_length=1, alias="accountName")]
    user_name: Annotated[str, Field(min_length=1, alias="userName")]
    password: SecretStr | None = Field(None, exclude=True)
    description: str | None = None

    @property
    def account(self) -> str:
        return self.account_name

    def expand(self) -> CredentialCreateOrUpdateParameters:
        if self.password is None or not self.password.get_secret_value():
            raise ConfigValidationError(
                f"Automation Credential '{self.name}' requires a password"
            )
        return CredentialCreateOrUpdateParameters(
            name=self.name,
            user_name=self.user_name,
            password=self.password.get_secret_value(),
            description=self.description,
        )

    @classmethod
    def flatten(
        cls,
        remote: Any,
        resource_id: ResourceId,
        prior: CredentialConfig | None = None,
    ) -> CredentialConfig:
        config = cls._from_remote({
            "name": remote.name,
            "account_name": resource_id.account_name,
            "resource_group_name": resource_id.resource_group,
            "user_name": remote.user_name,
            "description": remote.description,
        })
        if prior is not None:
            config.password = prior.password
        return config


class RunbookConfig(ResourceConfig):
    """Automation runbook declaration."""

    kind: ClassVar[ResourceKind] = ResourceKind.RUNBOOK
    force_new_fields: ClassVar[tuple[str, ...]] = (
        "name",
        "account_name",
        "location",
        "resource_group_name",
        "runbook_type",
        "description",
        "publish_content_link",
    )
    case_insensitive_fields: ClassVar[frozenset[str]] = frozenset({"runbook_type"})

    account_name: Annotated[str, Field(min_length=1, alias="accountName")]
    location: Annotated[str, Field(min_length=1)]
    runbook_type: str = Field(alias="runbookType")
    log_progress: bool = Field(alias="logProgress")
    log_verbose: bool = Field(alias="logVerbose")
    description: str | None = None
    publish_content_link: ContentLinkBlock = Field(alias="publishContentLink")
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        return normalize_location(v)

    @field_validator("runbook_type")
    @classmethod
    def validate_runbook_type(cls, v: str) -> str:
        return validate_choice(v, RunbookType, "runbook_type")

    @field_validator("publish_content_link", mode="before")
    @classmethod
    def validate_publish_content_link(cls, v: Any) -> Any:
        return unwrap_single_block(v, "publish_content_link")

    @property
    def account(self) -> str:
        return self.account_name

    def expand(self) -> RunbookCreateOrUpdateParameters:
        return RunbookCreateOrUpdateParameters(
            name=self.name,
            location=self.location,
            tags=self.tags,
            runbook_type=self.runbook_type,
            log_progress=self.log_progress,
            log_verbose=self.log_verbose,
            description=self.description,
            publish_content_link=ContentLink(uri=self.publish_content_link.uri),
        )

    @classmethod
    def flatten(
        cls,
        remote: Any,
        resource_id: ResourceId,
        prior: RunbookConfig | None = None,
    ) -> RunbookConfig:
        link = remote.publish_content_link
        if link is not None and link.uri:
            content_link: dict[str, Any] | None = {"uri": link.uri}
        elif prior is not None:
            # Not every API version echoes the published content link
            content_link = {"uri": prior.publish_content_link.uri}
        else:
            content_link = None

        return cls._from_remote({
            "name": remote.name,
            "account_name": resource_id.account_name,
            "location": remote.location or "",
            "resource_group_name": resource_id.resource_group,
            "runbook_type": enum_value(remote.runbook_type),
            "log_progress": bool(remote.log_progress),
            "log_verbose": bool(remote.log_verbose),
            "description": remote.description,
            "publish_content_link": content_link,
            "tags": dict(remote.tags or {}),
        })


class ScheduleConfig(ResourceConfig):
    """Automation schedule declaration.

    ``start_time`` and ``expiry_time`` are optional here, but the service
    rejects a create without ``start_time`` (HTTP 400) on API versions that
    require it, so declare one for new schedules. When left out, whatever the
    service assigns is not reported as drift.
    """

    kind: ClassVar[ResourceKind] = ResourceKind.SCHEDULE
    force_new_fields: ClassVar[tuple[str, ...]] = (
        "name",
        "account_name",
        "resource_group_name",
    )
    case_insensitive_fields: ClassVar[frozenset[str]] = frozenset({"frequency"})
    server_assigned_fields: ClassVar[frozenset[str]] = frozenset({"start_time", "expiry_time"})

    account_name: Annotated[str, Field(min_length=1, alias="accountName")]
    description: str | None = None
    start_time: datetime | None = Field(None, alias="startTime")
    expiry_time: datetime | None = Field(None, alias="expiryTime")
    frequency: str
    interval: int

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v: str) -> str:
        return validate_choice(v, ScheduleFrequency, "frequency")

    @property
    def account(self) -> str:
        return self.account_name

    def expand(self) -> ScheduleCreateOrUpdateParameters:
        return ScheduleCreateOrUpdateParameters(
            name=self.name,
            description=self.description,
            start_time=self.start_time,
            expiry_time=self.expiry_time,
            frequency=self.frequency,
            interval=encode_interval(self.frequency, self.interval),
        )

    @classmethod
    def flatten(
        cls,
        remote: Any,
        resource_id: ResourceId,
        prior: ScheduleConfig | None = None,  # noqa: ARG003 - uniform signature
    ) -> ScheduleConfig:
        frequency = enum_value(remote.frequency)
        if not frequency:
            raise RemoteContractError(f"Automation Schedule '{remote.name}' has no frequency")

        return cls._from_remote({
            "name": remote.name,
            "account_name": resource_id.account_name,
            "resource_group_name": resource_id.resource_group,
            "description": remote.description,
            "start_time": remote.start_time,
            "expiry_time": remote.expiry_time,
            "frequency": frequency,
            "interval": decode_interval(remote.interval, frequency),
        })


CONFIG_REGISTRY: dict[ResourceKind, type[ResourceConfig]] = {
    ResourceKind.ACCOUNT: AccountConfig,
    ResourceKind.CREDENTIAL: CredentialConfig,
    ResourceKind.RUNBOOK: RunbookConfig,
    ResourceKind.SCHEDULE: ScheduleConfig,
}


def get_config_class(kind: str) -> type[ResourceConfig]:
    """Get the declaration class for a manifest kind.

    Raises:
        ValueError: If kind is not recognized.
    """
    try:
        resource_kind = ResourceKind(kind)
    except ValueError as e:
        valid_kinds = [k.value for k in ResourceKind]
        raise ValueError(f"Unknown kind '{kind}'. Valid kinds: {valid_kinds}") from e
    return CONFIG_REGISTRY[resource_kind]
