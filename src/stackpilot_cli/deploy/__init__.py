"""Deploy package for stackpilot.

This package provides the `stackpilot deploy` flow which:
1. Writes the stack's compose manifest
2. Makes sure Docker (and the registry, if configured) is running
3. Removes the running stack and waits for teardown
4. Rebuilds, tags and pushes the stack's image
5. Initializes swarm mode when needed
6. Syncs secrets and deploys the stack
"""

from .confirm import (
    POLICIES,
    Confirmer,
    FailFastConfirmer,
    InteractiveConfirmer,
    PolicyConfirmer,
    make_confirmer,
)
from .environment import SecretSynchronizer, load_env_overrides
from .images import ImageResolver, registry_reference
from .lifecycle import DependencyState, EngineInstaller, LifecycleController
from .manifest import ManifestWriter
from .orchestrator import DeploymentOrchestrator, DeployOptions, DeployResult
from .poller import PollResult, Poller
from .probe import RuntimeProbe, RuntimeState
from .runner import CommandResult, CommandRunner

__all__ = [
    # Commands
    "CommandRunner",
    "CommandResult",
    # Probing
    "RuntimeProbe",
    "RuntimeState",
    "ImageResolver",
    "registry_reference",
    # Polling
    "Poller",
    "PollResult",
    # Lifecycle
    "DependencyState",
    "EngineInstaller",
    "LifecycleController",
    # Confirmation
    "POLICIES",
    "Confirmer",
    "InteractiveConfirmer",
    "PolicyConfirmer",
    "FailFastConfirmer",
    "make_confirmer",
    # Manifest, environment, secrets
    "ManifestWriter",
    "SecretSynchronizer",
    "load_env_overrides",
    # Orchestration
    "DeploymentOrchestrator",
    "DeployOptions",
    "DeployResult",
]
