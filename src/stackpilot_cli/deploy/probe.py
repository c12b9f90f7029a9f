"""Runtime state detection for the container engine and registry.

Probes never raise for a negative answer: a failed or empty response from
the engine means "no", not an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import httpx

from ..config import RegistryAddress, StackIdentity
from ..shared.logging import get_logger
from .runner import CommandRunner

logger = get_logger(__name__)

ENGINE_COMMAND = "docker"

# Process names of the engine daemon (Linux) and Docker Desktop (macOS)
ENGINE_PROCESS_PATTERNS = ("dockerd", "com.docker.backend")

DEFAULT_ADVERTISE_ADDR = "127.0.0.1:2377"

STACK_NAMESPACE_LABEL = "com.docker.stack.namespace"

# Short container ids as printed by `docker ps -q`
CONTAINER_ID_PATTERN = re.compile(r"^[a-z0-9]{12}$")


@dataclass
class RuntimeState:
    """Snapshot of engine, cluster, stack and registry status."""

    engine_installed: bool = False
    engine_running: bool = False
    in_cluster_mode: bool = False
    stack_running: bool = False
    registry_running: bool = False


class RuntimeProbe:
    """Answer yes/no questions about the container runtime."""

    def __init__(
        self,
        runner: CommandRunner,
        advertise_addr: str = DEFAULT_ADVERTISE_ADDR,
        http_timeout: float = 5.0,
    ):
        """Initialize probe.

        Args:
            runner: Command runner for engine commands.
            advertise_addr: Address passed to `swarm init` by the fallback
                cluster-mode probe.
            http_timeout: Timeout for the registry catalog request.
        """
        self.runner = runner
        self.advertise_addr = advertise_addr
        self.http_timeout = http_timeout

    def is_engine_installed(self) -> bool:
        """Check whether the engine CLI is on PATH."""
        return self.runner.which(ENGINE_COMMAND) is not None

    def is_engine_running(self) -> bool:
        """Check for a management process and a responsive daemon.

        The process alone is not enough: it appears well before the daemon
        starts answering requests.
        """
        if not self._engine_process_detected():
            return False
        result = self.runner.run([ENGINE_COMMAND, "ps"], check=False)
        return result.clean

    def _engine_process_detected(self) -> bool:
        for pattern in ENGINE_PROCESS_PATTERNS:
            result = self.runner.run(["pgrep", "-f", pattern], check=False)
            if result.success and result.stdout.strip():
                return True
        return False

    def query_cluster_status(self) -> bool | None:
        """Read cluster membership from `docker info`.

        Returns:
            True if the node is an active swarm member, False if inactive,
            None if the engine gave no usable answer.
        """
        result = self.runner.run(
            [ENGINE_COMMAND, "info", "--format", "{{.Swarm.LocalNodeState}}"],
            check=False,
        )
        if not result.success:
            return None
        state = result.stdout.strip().lower()
        if state == "active":
            return True
        if state == "inactive":
            return False
        return None

    def is_in_cluster_mode(self) -> bool:
        """Check whether the engine runs in cluster (swarm) mode.

        Falls back to initializing a swarm and leaving it again when the
        structured query has no answer. That fallback mutates the engine,
        so it must not run concurrently with other swarm commands.
        A failed leave is logged, not raised; the node is then left in a
        swarm it did not ask for.
        """
        status = self.query_cluster_status()
        if status is not None:
            return status

        logger.info("cluster_probe_fallback", advertise_addr=self.advertise_addr)
        result = self.runner.run(
            [ENGINE_COMMAND, "swarm", "init", "--advertise-addr", self.advertise_addr],
            check=False,
        )
        if result.success:
            # The init succeeded, so there was no swarm before it
            leave = self.runner.run([ENGINE_COMMAND, "swarm", "leave", "--force"], check=False)
            if not leave.success:
                logger.warning("cluster_probe_leave_failed", stderr=leave.stderr.strip())
            return False
        return True

    def is_registry_running(self, hostname: str, port: str) -> bool:
        """Check whether the registry answers its catalog endpoint."""
        url = f"http://{hostname}:{port}/v2/_catalog"
        try:
            response = httpx.get(url, timeout=self.http_timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("registry_unreachable", url=url, error=str(e))
            return False
        return response.is_success

    def is_stack_running(self, identity: StackIdentity) -> bool:
        """Check for running containers labelled with the stack namespace."""
        result = self.runner.run(
            [
                ENGINE_COMMAND,
                "ps",
                "-q",
                "--filter",
                f"label={STACK_NAMESPACE_LABEL}={identity.dns_name}",
            ],
            check=False,
        )
        return result.success and bool(result.stdout.strip())

    def find_container(self, name: str) -> str | None:
        """Find a container (running or stopped) by exact name.

        Returns:
            The 12-character container id, or None if nothing trustworthy
            was printed.
        """
        result = self.runner.run(
            [ENGINE_COMMAND, "ps", "-a", "-q", "--filter", f"name=^/{name}$"],
            check=False,
        )
        if not result.success:
            return None
        container_id = "".join(result.stdout.split())
        if CONTAINER_ID_PATTERN.match(container_id):
            return container_id
        if container_id:
            logger.warning("container_id_rejected", name=name, output=container_id)
        return None

    def snapshot(
        self,
        identity: StackIdentity,
        registry: RegistryAddress | None = None,
    ) -> RuntimeState:
        """Probe everything at once (used by `stackpilot status`)."""
        state = RuntimeState(engine_installed=self.is_engine_installed())
        if not state.engine_installed:
            return state
        state.engine_running = self.is_engine_running()
        if state.engine_running:
            state.in_cluster_mode = self.is_in_cluster_mode()
            state.stack_running = self.is_stack_running(identity)
        if registry:
            state.registry_running = self.is_registry_running(registry.hostname, registry.port)
        return state
