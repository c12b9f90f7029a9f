"""Shared test fixtures for stackpilot-cli tests.

This module provides fixtures for testing the deploy flow:
- fake_engine: Scripted docker CLI (see tests/mocks/fake_engine.py)
- registry_http: Patches httpx.get so the registry answers when its
  container runs in the fake engine
- project_dir / registry_project_dir: Project directories with
  stackpilot.json
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from stackpilot_cli.deploy import LifecycleController, Poller, PolicyConfirmer, RuntimeProbe
from tests.mocks import (
    REGISTRY_CONTAINER,
    FakeEngine,
    FakeEngineState,
    base_config,
    registry_config,
    write_project,
)


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Running engine, swarm inactive, nothing deployed."""
    return FakeEngine(FakeEngineState())


@pytest.fixture
def registry_http(fake_engine: FakeEngine):
    """Answer registry catalog requests from the fake engine's containers."""

    def fake_get(url, *args, **kwargs):
        if fake_engine.registry_reachable(REGISTRY_CONTAINER):
            response = MagicMock()
            response.status_code = 200
            response.is_success = True
            return response
        raise httpx.ConnectError("Connection refused")

    with patch("httpx.get", side_effect=fake_get) as mock_get:
        yield mock_get


@pytest.fixture
def poller() -> Poller:
    """Poller that never really sleeps."""
    return Poller(interval_seconds=0, timeout_seconds=None, max_attempts=50, sleep=lambda _: None)


@pytest.fixture
def probe(fake_engine: FakeEngine) -> RuntimeProbe:
    return RuntimeProbe(fake_engine)


@pytest.fixture
def lifecycle(fake_engine: FakeEngine, probe: RuntimeProbe, poller: Poller) -> LifecycleController:
    """Lifecycle controller that answers yes to every prompt."""
    return LifecycleController(
        fake_engine,
        probe,
        poller,
        PolicyConfirmer(True),
        installer=MagicMock(),
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project without a registry."""
    return write_project(tmp_path / "project", base_config())


@pytest.fixture
def registry_project_dir(tmp_path: Path) -> Path:
    """Project publishing to a local registry."""
    return write_project(
        tmp_path / "project",
        base_config(registryAddress=registry_config()),
    )
