"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add src and tests (for azure_mock) to the import path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from azure_mock import MockAutomationClient  # noqa: E402

SEEDED_RESOURCE_GROUP = "rg-ops"
SEEDED_ACCOUNT = "aa-ops"


@pytest.fixture
def client() -> MockAutomationClient:
    """Mock Automation client with one existing account (rg-ops/aa-ops)."""
    client = MockAutomationClient()
    client.state.add_account(SEEDED_RESOURCE_GROUP, SEEDED_ACCOUNT)
    return client
