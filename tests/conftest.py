"""Shared pytest fixtures for decisioning tests.

The extension fixture runs a real SerialWorker on the test's event loop and
records every outbound event in ``dispatched`` instead of sending it.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio

from decisioning.constants import ConfigurationKeys
from decisioning.extension.events import Event
from decisioning.extension.orchestrator import DecisioningExtension


@pytest.fixture()
def dispatched() -> list[Event]:
    return []


@pytest.fixture()
def configuration() -> dict[str, Any]:
    """Mutable configuration shared state; tests may clear or edit it."""
    return {ConfigurationKeys.EDGE_CONFIG_ID: "cfg-test-1"}


@pytest_asyncio.fixture()
async def extension(
    dispatched: list[Event], configuration: dict[str, Any]
) -> AsyncGenerator[DecisioningExtension, None]:
    ext = DecisioningExtension(dispatched.append, lambda: configuration)
    await ext.start()
    yield ext
    await ext.stop()
