#!/usr/bin/env python3
"""pvekit CLI - Proxmox LXC Docker hosts and Portainer deployment pipelines."""

from typing import Optional

import typer
from rich.console import Console

from pvekit import __version__
from pvekit.cli_deploy_commands import register_deploy_commands
from pvekit.cli_lxc_commands import register_lxc_commands
from pvekit.cli_scaffold_commands import register_scaffold_commands
from pvekit.cli_workflow_commands import register_workflow_commands
from pvekit.core.logger import get_logger, setup_file_logging

app = typer.Typer(
    name="pvekit",
    help="""pvekit - Proxmox LXC Docker hosts and Portainer deployment pipelines

Quick start:
  pvekit lxc create -n docker-host           # LXC + Docker + Portainer
  pvekit lxc ssh-setup -i 103                # deploy user + SSH key
  pvekit scaffold dotnet -s budget           # .NET API + Vue solution
  pvekit workflow build-deploy -s budget     # GitHub Actions workflow

Set PVEKIT_MOCK=1 to run without touching the host.
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"pvekit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Path to log file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    if log_file or verbose:
        setup_file_logging(log_file=log_file, verbose=verbose)


# Attach modular subcommands
register_lxc_commands(app, console)
register_workflow_commands(app, console)
register_scaffold_commands(app, console)
register_deploy_commands(app, console)

if __name__ == "__main__":
    app()
