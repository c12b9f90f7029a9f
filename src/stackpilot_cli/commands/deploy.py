"""Deploy commands for stackpilot.

This module provides `stackpilot deploy` and the companion `status`,
`down` and `manifest` commands. All of them take the project directory
as their only argument.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..config import load_project_config
from ..deploy import (
    POLICIES,
    CommandRunner,
    DeploymentOrchestrator,
    DeployOptions,
    ImageResolver,
    LifecycleController,
    ManifestWriter,
    Poller,
    RuntimeProbe,
    make_confirmer,
)
from ..deploy.confirm import POLICY_ALWAYS_YES, POLICY_INTERACTIVE
from ..deploy.poller import DEFAULT_TIMEOUT_SECONDS
from ..deploy.probe import DEFAULT_ADVERTISE_ADDR
from ..errors import StackpilotError

console = Console()

project_argument = click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)


@dataclass
class Components:
    """Wired deploy components for one invocation."""

    runner: CommandRunner
    probe: RuntimeProbe
    poller: Poller
    lifecycle: LifecycleController


def build_components(
    project_path: Path,
    policy: str = POLICY_INTERACTIVE,
    offline: bool = False,
    advertise_addr: str = DEFAULT_ADVERTISE_ADDR,
    wait_timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Components:
    """Wire runner, probe, poller and lifecycle controller together.

    Args:
        project_path: Project directory; commands run from there.
        policy: Confirmation policy name.
        offline: Never offer to install Docker.
        advertise_addr: Swarm advertise address.
        wait_timeout: Poll budget in seconds; 0 waits forever.
    """
    runner = CommandRunner(cwd=project_path)
    probe = RuntimeProbe(runner, advertise_addr=advertise_addr)
    poller = Poller(timeout_seconds=wait_timeout or None)
    lifecycle = LifecycleController(
        runner,
        probe,
        poller,
        make_confirmer(policy),
        offline=offline,
    )
    return Components(runner, probe, poller, lifecycle)


@contextmanager
def handle_errors():
    """Report stackpilot errors on stderr and exit non-zero."""
    try:
        yield
    except StackpilotError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\n✗ Cancelled", err=True)
        sys.exit(130)


@click.command()
@project_argument
@click.option("--keep-manifest", is_flag=True, help="Keep an existing manifest file")
@click.option("--keep-images", is_flag=True, help="Reuse existing images instead of rebuilding")
@click.option("--offline", is_flag=True, help="Never download or install dependencies")
@click.option(
    "--policy",
    type=click.Choice(POLICIES),
    default=POLICY_INTERACTIVE,
    envvar="STACKPILOT_POLICY",
    show_default=True,
    help="How install/start prompts are answered",
)
@click.option("--yes", "-y", is_flag=True, help="Shortcut for --policy always-yes")
@click.option(
    "--advertise-addr",
    default=DEFAULT_ADVERTISE_ADDR,
    envvar="STACKPILOT_ADVERTISE_ADDR",
    show_default=True,
    help="Swarm advertise address (iface or ip, with port)",
)
@click.option(
    "--wait-timeout",
    type=float,
    default=DEFAULT_TIMEOUT_SECONDS,
    envvar="STACKPILOT_WAIT_TIMEOUT",
    show_default=True,
    help="Seconds to wait for startups and teardown (0 waits forever)",
)
def deploy(
    path: Path,
    keep_manifest: bool,
    keep_images: bool,
    offline: bool,
    policy: str,
    yes: bool,
    advertise_addr: str,
    wait_timeout: float,
):
    """Build, publish and (re)deploy the stack in PATH.

    Running it again converges to the same result: a running stack is torn
    down first, old images are replaced, and secrets are recreated.

    Examples:

        # Full rebuild and redeploy
        stackpilot deploy ./my-app

        # Redeploy without rebuilding, answering yes to every prompt
        stackpilot deploy ./my-app --keep-images -y
    """
    project_path = path.resolve()
    if yes:
        policy = POLICY_ALWAYS_YES

    click.echo(f"\n🚀 Deploying {project_path}\n")

    with handle_errors():
        components = build_components(project_path, policy, offline, advertise_addr, wait_timeout)
        orchestrator = DeploymentOrchestrator(
            project_path,
            components.runner,
            components.probe,
            components.lifecycle,
            components.poller,
            options=DeployOptions(
                keep_manifest=keep_manifest,
                keep_images=keep_images,
                offline=offline,
            ),
            on_step=lambda step: click.echo(f"  → {step}"),
        )
        result = orchestrator.run()

    click.echo("\n" + "=" * 50)
    click.echo(f"✓ Stack '{result.stack_name}' deployed")
    click.echo(f"\n  Image:    {result.package}{' (rebuilt)' if result.image_built else ''}")
    click.echo(f"  Manifest: {result.manifest_path}")
    if result.secrets:
        click.echo(f"  Secrets:  {', '.join(result.secrets)}")
    click.echo("=" * 50 + "\n")


@click.command()
@project_argument
@click.option("--advertise-addr", default=DEFAULT_ADVERTISE_ADDR, envvar="STACKPILOT_ADVERTISE_ADDR")
def status(path: Path, advertise_addr: str):
    """Show engine, swarm, registry and stack status for PATH."""
    project_path = path.resolve()
    with handle_errors():
        config = load_project_config(project_path)
        runner = CommandRunner(cwd=project_path)
        probe = RuntimeProbe(runner, advertise_addr=advertise_addr)
        state = probe.snapshot(config.identity, config.registry)

        images = ImageResolver(runner)
        local_id = images.resolve_local(config.identity.package) if state.engine_running else None
        registry_id = None
        if config.registry and state.engine_running:
            registry_id = images.resolve_registry(config.registry, config.identity.package)

    table = Table(title=f"Stack {config.identity.dns_name}")
    table.add_column("Check")
    table.add_column("Status")

    def mark(ok: bool) -> str:
        return "[green]✓[/green]" if ok else "[red]✗[/red]"

    table.add_row("Docker installed", mark(state.engine_installed))
    table.add_row("Docker running", mark(state.engine_running))
    table.add_row("Swarm mode", mark(state.in_cluster_mode))
    table.add_row("Stack running", mark(state.stack_running))
    if config.registry:
        table.add_row(f"Registry {config.registry.address}", mark(state.registry_running))
    table.add_row(f"Image {config.identity.package}", local_id or "[dim]none[/dim]")
    if config.registry:
        table.add_row("Registry image", registry_id or "[dim]none[/dim]")
    console.print(table)


@click.command()
@project_argument
@click.option(
    "--wait-timeout",
    type=float,
    default=DEFAULT_TIMEOUT_SECONDS,
    envvar="STACKPILOT_WAIT_TIMEOUT",
    help="Seconds to wait for teardown (0 waits forever)",
)
def down(path: Path, wait_timeout: float):
    """Remove the stack deployed from PATH."""
    project_path = path.resolve()
    with handle_errors():
        config = load_project_config(project_path)
        components = build_components(project_path, wait_timeout=wait_timeout)
        orchestrator = DeploymentOrchestrator(
            project_path,
            components.runner,
            components.probe,
            components.lifecycle,
            components.poller,
        )
        if not components.probe.is_stack_running(config.identity):
            click.echo(f"Stack '{config.identity.dns_name}' is not running.")
            return
        orchestrator.remove_stack(config.identity)
    click.echo(f"✓ Stack '{config.identity.dns_name}' removed.")


@click.command()
@project_argument
def manifest(path: Path):
    """Write the compose manifest for PATH without deploying."""
    project_path = path.resolve()
    with handle_errors():
        config = load_project_config(project_path)
        manifest_path = ManifestWriter().write(project_path, config.compose_file)
    click.echo(f"✓ Generated: {manifest_path}")
