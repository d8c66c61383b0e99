"""Redeploy a container through the Portainer API."""
from __future__ import annotations

from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from pvekit.cli_support import handle_cli_error, is_mock, print_error, print_info, print_success


def register_deploy_commands(root: typer.Typer, console: Console) -> None:
    """Attach the deploy command to the main CLI."""

    @root.command("deploy")
    def deploy_command(
        image: str = typer.Option(..., "--image", help="Image without tag (e.g. user/budget-api)."),
        name: str = typer.Option(..., "--name", help="Container name."),
        port: int = typer.Option(..., "--port", help="Host port."),
        tag: str = typer.Option("latest", "--tag", help="Image tag."),
        container_port: int = typer.Option(80, "--container-port", help="Port exposed inside the container."),
        env: Optional[List[str]] = typer.Option(None, "--env", "-e", help="Environment variable (KEY=VALUE).", metavar="KEY=VALUE"),
        network: Optional[str] = typer.Option(None, "--network", help="Docker network to join."),
        url: Optional[str] = typer.Option(None, "--url", envvar="PORTAINER_URL", help="Portainer URL."),
        username: Optional[str] = typer.Option(None, "--username", envvar="PORTAINER_USERNAME", help="Portainer user."),
        password: Optional[str] = typer.Option(None, "--password", envvar="PORTAINER_PASSWORD", help="Portainer password."),
        endpoint: int = typer.Option(1, "--endpoint", envvar="PORTAINER_ENDPOINT_ID", help="Portainer endpoint ID."),
    ) -> None:
        """Pull an image and replace the named container via Portainer."""
        import requests

        from pvekit.models.deployment import DeploymentTarget
        from pvekit.services.portainer import PortainerClient, PortainerError

        missing = [
            flag for flag, value in (("--url", url), ("--username", username), ("--password", password))
            if not value
        ]
        if missing:
            print_error(console, f"Missing Portainer connection settings: {', '.join(missing)}")
            raise typer.Exit(1)

        try:
            target = DeploymentTarget(
                name=name,
                image=image,
                tag=tag,
                host_port=port,
                container_port=container_port,
                env=env or [],
                network=network,
            )
        except ValidationError as e:
            for error in e.errors():
                print_error(console, f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}")
            raise typer.Exit(1)

        if is_mock():
            print_info(console, f"MOCK: Would deploy {target.image_ref} as {target.name} on port {target.host_port} via {url}")
            return

        client = PortainerClient(url, username, password, endpoint_id=endpoint)
        try:
            container_id = client.redeploy(target)
        except (PortainerError, requests.RequestException) as e:
            handle_cli_error(e, console)

        print_success(console, f"Deployed {target.image_ref} as {target.name} ({container_id[:12]})")
