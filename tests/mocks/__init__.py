"""Test mocks for stackpilot-cli.

Provides mock implementations for testing:
- FakeEngine: Simulates the docker CLI for orchestration tests
- write_project/base_config: Build project directories
"""

from .fake_engine import FakeEngine, FakeEngineState, image_id_for
from .project import REGISTRY_CONTAINER, base_config, registry_config, write_project

__all__ = [
    "FakeEngine",
    "FakeEngineState",
    "image_id_for",
    "REGISTRY_CONTAINER",
    "base_config",
    "registry_config",
    "write_project",
]
