"""Mock Azure Automation control plane.

In-memory state for automation accounts and their child resources, with
operation groups shaped like ``azure.mgmt.automation.AutomationClient``:

- automation_account.get(rg, account) / create_or_update(rg, account, params) / delete(rg, account)
- credential|runbook|schedule.get(rg, account, name) / create_or_update(..., params) / delete(...)

Names are matched case-insensitively, as the service does. Missing
resources raise ResourceNotFoundError; injected failures raise
HttpResponseError with the requested status code.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

DEFAULT_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"
PROVIDER_NAMESPACE = "Microsoft.Automation"

ACCOUNTS = "automationAccounts"
CREDENTIALS = "credentials"
RUNBOOKS = "runbooks"
SCHEDULES = "schedules"


@dataclass
class MockSku:
    """Mirrors azure.mgmt.automation.models.Sku."""

    name: str


@dataclass
class MockContentLink:
    """Mirrors azure.mgmt.automation.models.ContentLink."""

    uri: str | None = None


@dataclass
class MockAccount:
    """Mirrors azure.mgmt.automation.models.AutomationAccount."""

    id: str | None
    name: str
    location: str
    sku: MockSku | None
    tags: dict[str, str] | None = None


@dataclass
class MockCredential:
    """Mirrors azure.mgmt.automation.models.Credential (no password, ever)."""

    id: str | None
    name: str
    user_name: str
    description: str | None = None


@dataclass
class MockRunbook:
    """Mirrors azure.mgmt.automation.models.Runbook."""

    id: str | None
    name: str
    location: str
    runbook_type: str
    log_progress: bool
    log_verbose: bool
    description: str | None = None
    publish_content_link: MockContentLink | None = None
    tags: dict[str, str] | None = None


@dataclass
class MockSchedule:
    """Mirrors azure.mgmt.automation.models.Schedule."""

    id: str | None
    name: str
    frequency: str
    interval: Any
    description: str | None = None
    start_time: Any = None
    expiry_time: Any = None


@dataclass
class RecordedCall:
    """One call made against a mock operation group."""

    group: str
    method: str
    args: tuple[Any, ...]


@dataclass
class _InjectedFailure:
    status_code: int
    message: str


@dataclass
class MockAutomationState:
    """In-memory Automation resources shared by every mock client."""

    subscription_id: str = DEFAULT_SUBSCRIPTION_ID

    # When True, get() answers without a resource ID (contract violation)
    strip_ids: bool = False

    calls: list[RecordedCall] = field(default_factory=list)
    passwords: dict[tuple[str, str, str], str] = field(default_factory=dict)
    _resources: dict[tuple[str, ...], Any] = field(default_factory=dict)
    _failures: dict[tuple[str, str], _InjectedFailure] = field(default_factory=dict)

    # -- identity ----------------------------------------------------------

    def resource_id(self, collection: str, resource_group: str, *names: str) -> str:
        account_id = (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{resource_group}"
            f"/providers/{PROVIDER_NAMESPACE}/{ACCOUNTS}/{names[0]}"
        )
        if collection == ACCOUNTS:
            return account_id
        return f"{account_id}/{collection}/{names[1]}"

    @staticmethod
    def _key(collection: str, resource_group: str, *names: str) -> tuple[str, ...]:
        return (collection, resource_group.lower(), *(n.lower() for n in names))

    # -- storage -----------------------------------------------------------

    def get(self, collection: str, resource_group: str, *names: str) -> Any | None:
        return self._resources.get(self._key(collection, resource_group, *names))

    def put(self, collection: str, resource_group: str, *names: str, resource: Any) -> None:
        self._resources[self._key(collection, resource_group, *names)] = resource

    def remove(self, collection: str, resource_group: str, *names: str) -> bool:
        return self._resources.pop(self._key(collection, resource_group, *names), None) is not None

    def count(self, collection: str) -> int:
        return sum(1 for key in self._resources if key[0] == collection)

    def add_account(
        self,
        resource_group: str,
        name: str,
        *,
        location: str = "westus",
        sku: str = "Basic",
    ) -> MockAccount:
        """Seed an automation account directly."""
        account = MockAccount(
            id=self.resource_id(ACCOUNTS, resource_group, name),
            name=name,
            location=location,
            sku=MockSku(name=sku),
            tags={},
        )
        self.put(ACCOUNTS, resource_group, name, resource=account)
        return account

    # -- failure injection -------------------------------------------------

    def fail(self, group: str, method: str, status_code: int = 500, message: str = "") -> None:
        """Make every following ``group.method`` call raise HttpResponseError."""
        self._failures[(group, method)] = _InjectedFailure(
            status_code=status_code,
            message=message or f"Simulated {status_code} from {group}.{method}",
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def check_failure(self, group: str, method: str) -> None:
        failure = self._failures.get((group, method))
        if failure is None:
            return
        error = HttpResponseError(message=failure.message)
        error.status_code = failure.status_code
        raise error

    def calls_to(self, group: str, method: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.group == group and c.method == method]


class _MockOperations:
    """Shared get/create_or_update/delete behaviour of an operation group."""

    group: str
    collection: str

    def __init__(self, state: MockAutomationState) -> None:
        self._state = state

    def _split(self, address: tuple[str, ...]) -> tuple[str, tuple[str, ...]]:
        return address[0], tuple(address[1:])

    def _require_account(self, resource_group: str, account_name: str) -> None:
        if self._state.get(ACCOUNTS, resource_group, account_name) is None:
            raise ResourceNotFoundError(
                message=f"Automation account '{account_name}' not found in {resource_group}"
            )

    def _build(self, resource_id: str, names: tuple[str, ...], parameters: Any) -> Any:
        raise NotImplementedError

    def get(self, *address: str) -> Any:
        self._state.calls.append(RecordedCall(self.group, "get", address))
        self._state.check_failure(self.group, "get")

        resource_group, names = self._split(address)
        resource = self._state.get(self.collection, resource_group, *names)
        if resource is None:
            raise ResourceNotFoundError(message=f"{self.collection} '{names[-1]}' not found")

        result = copy.deepcopy(resource)
        if self._state.strip_ids:
            result.id = None
        return result

    def create_or_update(self, *args: Any) -> Any:
        *address, parameters = args
        address_tuple = tuple(address)
        self._state.calls.append(RecordedCall(self.group, "create_or_update", args))
        self._state.check_failure(self.group, "create_or_update")

        resource_group, names = self._split(address_tuple)
        if self.collection != ACCOUNTS:
            self._require_account(resource_group, names[0])

        resource_id = self._state.resource_id(self.collection, resource_group, *names)
        resource = self._build(resource_id, names, parameters)
        self._state.put(self.collection, resource_group, *names, resource=resource)
        return copy.deepcopy(resource)

    def delete(self, *address: str) -> None:
        self._state.calls.append(RecordedCall(self.group, "delete", address))
        self._state.check_failure(self.group, "delete")

        resource_group, names = self._split(address)
        if not self._state.remove(self.collection, resource_group, *names):
            raise ResourceNotFoundError(message=f"{self.collection} '{names[-1]}' not found")


class _MockAccountOperations(_MockOperations):
    group = "automation_account"
    collection = ACCOUNTS

    def _build(self, resource_id: str, names: tuple[str, ...], parameters: Any) -> MockAccount:
        return MockAccount(
            id=resource_id,
            name=names[-1],
            location=parameters.location,
            sku=MockSku(name=parameters.sku.name),
            tags=dict(parameters.tags or {}),
        )


class _MockCredentialOperations(_MockOperations):
    group = "credential"
    collection = CREDENTIALS

    def _build(self, resource_id: str, names: tuple[str, ...], parameters: Any) -> MockCredential:
        self._state.passwords[(resource_id, parameters.user_name, names[-1])] = parameters.password
        return MockCredential(
            id=resource_id,
            name=names[-1],
            user_name=parameters.user_name,
            description=parameters.description,
        )


class _MockRunbookOperations(_MockOperations):
    group = "runbook"
    collection = RUNBOOKS

    def _build(self, resource_id: str, names: tuple[str, ...], parameters: Any) -> MockRunbook:
        link = parameters.publish_content_link
        return MockRunbook(
            id=resource_id,
            name=names[-1],
            location=parameters.location,
            runbook_type=parameters.runbook_type,
            log_progress=parameters.log_progress,
            log_verbose=parameters.log_verbose,
            description=parameters.description,
            publish_content_link=MockContentLink(uri=link.uri) if link else None,
            tags=dict(parameters.tags or {}),
        )


class _MockScheduleOperations(_MockOperations):
    group = "schedule"
    collection = SCHEDULES

    def _build(self, resource_id: str, names: tuple[str, ...], parameters: Any) -> MockSchedule:
        return MockSchedule(
            id=resource_id,
            name=names[-1],
            frequency=parameters.frequency,
            interval=copy.deepcopy(parameters.interval),
            description=parameters.description,
            start_time=parameters.start_time,
            expiry_time=parameters.expiry_time,
        )


class MockAutomationClient:
    """Mock implementation of azure.mgmt.automation.AutomationClient."""

    def __init__(
        self,
        state: MockAutomationState | None = None,
        subscription_id: str = DEFAULT_SUBSCRIPTION_ID,
        credential: Any = None,
    ) -> None:
        self.state = state or MockAutomationState(subscription_id=subscription_id)
        self.subscription_id = subscription_id
        # ``credential`` is the operation group name on the real client
        self.token_credential = credential
        self.automation_account = _MockAccountOperations(self.state)
        self.credential = _MockCredentialOperations(self.state)
        self.runbook = _MockRunbookOperations(self.state)
        self.schedule = _MockScheduleOperations(self.state)
