"""Engine and registry lifecycle management.

Both dependencies move through the same states:

    NOT_INSTALLED -> INSTALLED_NOT_RUNNING -> RUNNING

Each transition is taken only with operator approval. When the operator
declines, the controller waits for them to fix things by hand and checks
again, for as long as it takes.
"""

from __future__ import annotations

import platform
from enum import Enum

from ..config import RegistryAddress
from ..shared.logging import get_logger
from .confirm import Confirmer
from .poller import Poller
from .probe import ENGINE_COMMAND, RuntimeProbe
from .runner import CommandRunner

logger = get_logger(__name__)

ENGINE_INSTALL_SCRIPT = "curl -fsSL https://get.docker.com | sh"
REGISTRY_IMAGE = "registry:2"
REGISTRY_CONTAINER_PORT = 5000


class DependencyState(Enum):
    """Lifecycle state of the engine or the registry."""

    NOT_INSTALLED = "not_installed"
    INSTALLED_NOT_RUNNING = "installed_not_running"
    RUNNING = "running"


class EngineInstaller:
    """Install and start the container engine on this host."""

    def __init__(self, runner: CommandRunner, system: str | None = None):
        self.runner = runner
        self.system = system or platform.system()

    def install(self) -> None:
        """Run the engine's convenience install script."""
        self.runner.run(["sh", "-c", ENGINE_INSTALL_SCRIPT], capture_output=False)

    def start(self) -> None:
        """Start the engine daemon (Docker Desktop on macOS)."""
        if self.system == "Darwin":
            self.runner.run(["open", "-a", "Docker"])
        else:
            self.runner.run(["sudo", "systemctl", "start", "docker"])


class LifecycleController:
    """Bring the engine and registry to RUNNING."""

    def __init__(
        self,
        runner: CommandRunner,
        probe: RuntimeProbe,
        poller: Poller,
        confirmer: Confirmer,
        installer: EngineInstaller | None = None,
        offline: bool = False,
    ):
        """Initialize controller.

        Args:
            runner: Command runner for engine commands.
            probe: Runtime probe used to read states.
            poller: Poller for waiting on startups.
            confirmer: Answers install/start prompts.
            installer: Engine installer (default: EngineInstaller).
            offline: Never offer to download and install the engine.
        """
        self.runner = runner
        self.probe = probe
        self.poller = poller
        self.confirmer = confirmer
        self.installer = installer or EngineInstaller(runner)
        self.offline = offline

    # =========================================================================
    # Engine
    # =========================================================================

    def engine_state(self) -> DependencyState:
        if not self.probe.is_engine_installed():
            return DependencyState.NOT_INSTALLED
        if not self.probe.is_engine_running():
            return DependencyState.INSTALLED_NOT_RUNNING
        return DependencyState.RUNNING

    def ensure_engine(self) -> None:
        """Install and start the engine as needed."""
        while True:
            state = self.engine_state()
            logger.info("engine_state", state=state.value)

            if state == DependencyState.RUNNING:
                return

            if state == DependencyState.NOT_INSTALLED:
                if not self.offline and self.confirmer.confirm(
                    "Docker is not installed. Install it now?", default=True
                ):
                    self.installer.install()
                else:
                    self.confirmer.wait_for_operator("Install Docker, then continue.")
                continue

            if self.confirmer.confirm("Docker is not running. Start it now?", default=True):
                self.installer.start()
                self.poller.wait(lambda: not self.probe.is_engine_running(), "engine startup")
            else:
                self.confirmer.wait_for_operator("Start Docker, then continue.")

    # =========================================================================
    # Registry
    # =========================================================================

    def registry_state(self, registry: RegistryAddress) -> DependencyState:
        if self.probe.is_registry_running(registry.hostname, registry.port):
            return DependencyState.RUNNING
        if self.probe.find_container(registry.name):
            return DependencyState.INSTALLED_NOT_RUNNING
        return DependencyState.NOT_INSTALLED

    def ensure_registry(self, registry: RegistryAddress) -> None:
        """Start or create the registry container as needed."""
        while True:
            state = self.registry_state(registry)
            logger.info("registry_state", registry=registry.address, state=state.value)

            if state == DependencyState.RUNNING:
                return

            if self.confirmer.confirm(
                f"Registry '{registry.name}' is not running at {registry.address}. "
                "Start it now?",
                default=True,
            ):
                self.start_registry(registry)
                self.poller.wait(
                    lambda: not self.probe.is_registry_running(registry.hostname, registry.port),
                    "registry startup",
                )
            else:
                self.confirmer.wait_for_operator(
                    f"Start registry '{registry.name}' at {registry.address}, then continue."
                )

    def start_registry(self, registry: RegistryAddress) -> None:
        """Restart an existing registry container or create a new one."""
        container_id = self.probe.find_container(registry.name)
        if container_id:
            logger.info("registry_restart", container=container_id)
            self.runner.run([ENGINE_COMMAND, "start", container_id])
            return

        logger.info("registry_create", name=registry.name, port=registry.port)
        self.runner.run(
            [
                ENGINE_COMMAND,
                "run",
                "-d",
                "-p",
                f"{registry.port}:{REGISTRY_CONTAINER_PORT}",
                "--restart=always",
                "--name",
                registry.name,
                REGISTRY_IMAGE,
            ]
        )
