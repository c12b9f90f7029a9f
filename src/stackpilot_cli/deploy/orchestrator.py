"""Build-publish-deploy sequencing.

DeploymentOrchestrator reconciles the engine toward the stack described
by the project directory. Every decision re-reads engine state instead of
trusting an earlier answer, so an interrupted run is repaired by running
again.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..config import ProjectConfig, RegistryAddress, StackIdentity, load_project_config
from ..shared.logging import get_logger
from .environment import ENV_FILE, SECRETS_DIR, SecretSynchronizer, load_env_overrides
from .images import ImageResolver, registry_reference
from .lifecycle import LifecycleController
from .manifest import ManifestWriter
from .poller import Poller
from .probe import ENGINE_COMMAND, RuntimeProbe
from .runner import CommandRunner

logger = get_logger(__name__)


@dataclass
class DeployOptions:
    """Flags that change what a deploy run does."""

    keep_manifest: bool = False
    keep_images: bool = False
    offline: bool = False
    env_file: str = ENV_FILE
    secrets_dir: str = SECRETS_DIR


@dataclass
class DeployResult:
    """What a deploy run did."""

    stack_name: str
    package: str
    manifest_path: Path | None = None
    manifest_written: bool = False
    stack_removed: bool = False
    removed_images: list[str] = field(default_factory=list)
    image_built: bool = False
    image_pushed: bool = False
    cluster_initialized: bool = False
    secrets: list[str] = field(default_factory=list)
    env_keys: list[str] = field(default_factory=list)


class DeploymentOrchestrator:
    """Tear down, rebuild, republish and redeploy one stack."""

    def __init__(
        self,
        project_path: Path,
        runner: CommandRunner,
        probe: RuntimeProbe,
        lifecycle: LifecycleController,
        poller: Poller,
        options: DeployOptions | None = None,
        images: ImageResolver | None = None,
        manifest_writer: ManifestWriter | None = None,
        secrets: SecretSynchronizer | None = None,
        on_step: Callable[[str], None] | None = None,
    ):
        """Initialize orchestrator.

        Args:
            project_path: Project directory (build context, config, manifest).
            runner: Command runner for mutating engine commands.
            probe: Runtime probe.
            lifecycle: Engine/registry lifecycle controller.
            poller: Poller for stack teardown.
            options: Deploy flags.
            images: Image resolver (default: built on runner).
            manifest_writer: Manifest writer (default: ManifestWriter).
            secrets: Secret synchronizer (default: built on runner).
            on_step: Optional callback called with a short description of
                each step as it starts, for progress output.
        """
        self.project_path = project_path
        self.runner = runner
        self.probe = probe
        self.lifecycle = lifecycle
        self.poller = poller
        self.options = options or DeployOptions()
        self.images = images or ImageResolver(runner)
        self.manifest_writer = manifest_writer or ManifestWriter()
        self.secrets = secrets or SecretSynchronizer(runner)
        self._on_step = on_step

    def _step(self, description: str) -> None:
        logger.info("deploy_step", step=description)
        if self._on_step:
            self._on_step(description)

    def load_config(self) -> ProjectConfig:
        return load_project_config(self.project_path)

    def run(self) -> DeployResult:
        """Execute the full deploy sequence.

        Raises:
            ConfigurationError: Before anything is changed, if the project
                configuration is invalid.
            ExternalCommandError: If a build, push, init or deploy fails.
            PollTimeoutError: If an awaited transition never completes.
        """
        config = self.load_config()
        identity = config.identity
        registry = config.registry
        result = DeployResult(stack_name=identity.dns_name, package=identity.package)

        self._step("Writing manifest")
        manifest_path, written = self.manifest_writer.ensure(
            self.project_path, config.compose_file, keep_existing=self.options.keep_manifest
        )
        result.manifest_path = manifest_path
        result.manifest_written = written

        self._step("Checking Docker")
        self.lifecycle.ensure_engine()

        local_id = self.images.resolve_local(identity.package)
        registry_id = None
        if registry:
            self._step(f"Checking registry {registry.address}")
            self.lifecycle.ensure_registry(registry)
            registry_id = self.images.resolve_registry(registry, identity.package)
        logger.info("images_resolved", local=local_id, registry=registry_id)

        if self.probe.is_stack_running(identity):
            self._step(f"Removing stack {identity.dns_name}")
            self.remove_stack(identity)
            result.stack_removed = True

        if self.options.keep_images and local_id:
            self._step("Keeping existing images")
            if registry and not registry_id:
                self.publish(identity, registry)
                result.image_pushed = True
        else:
            result.removed_images = self.remove_images(local_id, registry_id)
            self._step(f"Building {identity.package}")
            self.build(identity)
            result.image_built = True
            if registry:
                self._step(f"Pushing to {registry.address}")
                self.publish(identity, registry)
                result.image_pushed = True

        if not self.probe.is_in_cluster_mode():
            self._step("Initializing swarm")
            self.init_cluster()
            result.cluster_initialized = True

        env = load_env_overrides(self.project_path / self.options.env_file)
        result.env_keys = sorted(env)
        self._step("Syncing secrets")
        result.secrets = self.secrets.sync(self.project_path / self.options.secrets_dir)

        self._step(f"Deploying stack {identity.dns_name}")
        self.deploy(identity, manifest_path, env)
        return result

    # =========================================================================
    # Steps
    # =========================================================================

    def remove_stack(self, identity: StackIdentity) -> None:
        """Remove the stack and wait until its containers are gone."""
        self.runner.run([ENGINE_COMMAND, "stack", "rm", identity.dns_name])
        self.poller.wait(lambda: self.probe.is_stack_running(identity), "stack teardown")

    def remove_images(self, local_id: str | None, registry_id: str | None) -> list[str]:
        """Delete the local and registry-tagged images.

        The registry image is skipped when it is the same image as the local
        one, since removing it twice fails.
        """
        removed = []
        if local_id:
            self.runner.run([ENGINE_COMMAND, "rmi", "-f", local_id])
            removed.append(local_id)
        if registry_id and registry_id != local_id:
            self.runner.run([ENGINE_COMMAND, "rmi", "-f", registry_id])
            removed.append(registry_id)
        return removed

    def build(self, identity: StackIdentity) -> None:
        self.runner.run(
            [ENGINE_COMMAND, "build", "-t", identity.package, str(self.project_path)],
            capture_output=False,
        )

    def publish(self, identity: StackIdentity, registry: RegistryAddress) -> None:
        """Tag the local image for the registry and push it."""
        reference = registry_reference(registry, identity.package)
        self.runner.run([ENGINE_COMMAND, "tag", identity.package, reference])
        self.runner.run([ENGINE_COMMAND, "push", reference], capture_output=False)

    def init_cluster(self) -> None:
        self.runner.run(
            [ENGINE_COMMAND, "swarm", "init", "--advertise-addr", self.probe.advertise_addr]
        )

    def deploy(self, identity: StackIdentity, manifest_path: Path, env: dict[str, str]) -> None:
        self.runner.run(
            [ENGINE_COMMAND, "stack", "deploy", "-c", str(manifest_path), identity.dns_name],
            env=env,
        )
