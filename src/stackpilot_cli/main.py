"""CLI main entry point."""

from pathlib import Path

import click

from . import __version__
from .commands.deploy import deploy, down, manifest, status
from .shared.logging import configure_logging, level_for_verbosity


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
@click.option("--json-logs", is_flag=True, help="Write logs as JSON")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="STACKPILOT_LOG_FILE",
    help="Write logs to this file instead of stderr",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, json_logs: bool, log_file: Path | None) -> None:
    """Build, publish and deploy a Docker swarm stack."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level_for_verbosity(verbose), log_file=log_file, json_output=json_logs)


cli.add_command(deploy)
cli.add_command(status)
cli.add_command(down)
cli.add_command(manifest)


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"stackpilot version {__version__}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
