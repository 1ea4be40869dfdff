"""Azure Automation reconciler CLI (azauto).

Usage:
    azauto apply runbook.yaml                  # Create or update from a manifest
    azauto plan runbook.yaml                   # Compare a manifest with saved state
    azauto show AutomationRunbook <id>         # Read remote state by resource ID
    azauto delete AutomationRunbook <id>       # Delete by resource ID
"""

from __future__ import annotations

import json
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click

from .client import build_reconcilers, create_automation_client
from .config import Config, ConfigurationError
from .errors import AutomationReconcilerError
from .logging_setup import setup_logging
from .models import ResourceKind
from .reconcilers import Reconciler
from .security import SecretlessViolationError
from .spec_loader import load_manifest
from .state import StateError, StateStore

# Exit codes
EXIT_SECURITY_VIOLATION = 2
EXIT_ABSENT = 3

KIND_CHOICES = [k.value for k in ResourceKind]


class SecurityViolation(click.ClickException):
    """Credential secrets were found in the environment."""

    exit_code = EXIT_SECURITY_VIOLATION


@dataclass
class Runtime:
    """Per-invocation configuration and lazily built Azure client."""

    config: Config
    store: StateStore
    _reconcilers: dict[ResourceKind, Reconciler] | None = field(default=None, repr=False)

    @property
    def reconcilers(self) -> dict[ResourceKind, Reconciler]:
        if self._reconcilers is None:
            self._reconcilers = build_reconcilers(create_automation_client(self.config))
        return self._reconcilers

    def reconciler_for(self, kind: str) -> Reconciler:
        return self.reconcilers[ResourceKind(kind)]


@contextmanager
def handle_errors() -> Generator[None, None, None]:
    """Turn package errors into click errors with the right exit code."""
    try:
        yield
    except SecretlessViolationError as e:
        raise SecurityViolation(str(e)) from e
    except (AutomationReconcilerError, ConfigurationError, StateError) as e:
        raise click.ClickException(str(e)) from e


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


@click.group()
@click.version_option(version="0.1.0", prog_name="azauto")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Reconcile Azure Automation accounts, credentials, runbooks and schedules.

    \b
    Configuration is read from the environment:
        AZURE_SUBSCRIPTION_ID  (required)
        AZURE_CLIENT_ID        user-assigned managed identity (optional)
        STATE_DIR              saved resource state (default: .automation-state)
        LOG_LEVEL              default: INFO
    """
    with handle_errors():
        config = Config.from_env()

    setup_logging(config.log_level_number, json_output=config.json_logging)
    ctx.obj = Runtime(config=config, store=StateStore(config.state_dir))


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def apply(runtime: Runtime, manifest: Path) -> None:
    """Create or update the resource declared in MANIFEST."""
    with handle_errors():
        desired = load_manifest(manifest)
        state = runtime.reconciler_for(desired.kind.value).create_or_update(desired)
        runtime.store.save(state)

    echo_json(state.to_dict())


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def plan(runtime: Runtime, manifest: Path) -> None:
    """Compare MANIFEST with the saved state of the same resource.

    \b
    Actions:
        create   no saved state
        replace  an immutable field changed
        update   only mutable fields changed
        noop     nothing changed
    """
    with handle_errors():
        desired = load_manifest(manifest)
        prior = runtime.store.load(desired.kind, desired)

    if prior is None:
        echo_json({"action": "create", "changed": [], "force_new": []})
        return

    changed = prior.config.changed_fields(desired)
    force_new = prior.config.force_new_changes(desired)
    if force_new:
        action = "replace"
    elif changed:
        action = "update"
    else:
        action = "noop"

    echo_json({"action": action, "id": prior.id, "changed": changed, "force_new": force_new})


@cli.command()
@click.argument("kind", type=click.Choice(KIND_CHOICES, case_sensitive=False))
@click.argument("resource_id")
@click.pass_obj
def show(runtime: Runtime, kind: str, resource_id: str) -> None:
    """Read the resource RESOURCE_ID of type KIND from Azure.

    Exits with code 3 when the resource no longer exists.
    """
    with handle_errors():
        state = runtime.reconciler_for(kind).read(resource_id)
        if state is None:
            runtime.store.remove(resource_id)
        else:
            runtime.store.save(state)

    if state is None:
        click.echo(f"{kind} {resource_id} does not exist", err=True)
        raise SystemExit(EXIT_ABSENT)

    echo_json(state.to_dict())


@cli.command()
@click.argument("kind", type=click.Choice(KIND_CHOICES, case_sensitive=False))
@click.argument("resource_id")
@click.pass_obj
def delete(runtime: Runtime, kind: str, resource_id: str) -> None:
    """Delete the resource RESOURCE_ID of type KIND. Succeeds if already gone."""
    with handle_errors():
        runtime.reconciler_for(kind).delete(resource_id)
        runtime.store.remove(resource_id)

    click.echo(f"Deleted {kind} {resource_id}")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
