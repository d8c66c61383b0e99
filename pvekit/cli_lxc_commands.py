"""LXC container CLI commands (create, next-id, ssh-setup)."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pvekit.cli_support import (
    confirm_action,
    handle_cli_error,
    is_mock,
    print_error,
    print_info,
    print_success,
    print_warning,
    prompt_required,
)
from pvekit.core.config import ConfigError, get_config, load_defaults
from pvekit.core.lock import LockError
from pvekit.models.container import ContainerSpec
from pvekit.services.provision import (
    PASSWORD_REFERENCE_FILE,
    PORTAINER_HTTP_PORT,
    PORTAINER_HTTPS_PORT,
    ProvisionError,
)
from pvekit.services.proxmox.orchestrator import (
    ContainerCreateError,
    ContainerOrchestrator,
    TemplateNotFoundError,
)
from pvekit.services.proxmox.vmid import VmidExhaustedError, VmidInUseError
from pvekit.services.ssh_deploy import (
    ContainerNotFoundError,
    ContainerNotRunningError,
    DeployUserSetup,
    SSHKeyError,
    SSHKeyManager,
    deployment_secrets,
)

LxcTyper = typer.Typer(help="Create and prepare Proxmox LXC Docker hosts")


def _spec_table(spec: ContainerSpec) -> Table:
    table = Table(title="Container Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("ID", str(spec.vmid) if spec.vmid is not None else "auto")
    table.add_row("Name", spec.name)
    table.add_row("Hostname", spec.hostname)
    table.add_row("Template", spec.ostemplate)
    table.add_row("Memory", f"{spec.memory} MB")
    table.add_row("Cores", str(spec.cores))
    table.add_row("Disk", spec.rootfs)
    table.add_row("Network", spec.net0)
    return table


def register_lxc_commands(root: typer.Typer, console: Console) -> None:
    """Attach LXC commands to the main CLI."""

    @LxcTyper.command("create")
    def create_command(
        name: Optional[str] = typer.Option(None, "--name", "-n", help="Container name."),
        env: Optional[str] = typer.Option(None, "--env", "-e", help="Environment suffix for the hostname (e.g. staging)."),
        project: Optional[str] = typer.Option(None, "--project", "-p", help="Project name used as hostname prefix."),
        vmid: Optional[int] = typer.Option(None, "--id", "-i", help="Container ID (auto-assigned if omitted)."),
        template: Optional[str] = typer.Option(None, "--template", "-t", help="Template file name in the storage."),
        storage: Optional[str] = typer.Option(None, "--storage", "-s", help="Proxmox storage for template and rootfs."),
        memory: Optional[int] = typer.Option(None, "--memory", "-m", help="Memory in MB."),
        cores: Optional[int] = typer.Option(None, "--cores", "-c", help="CPU cores."),
        disk: Optional[str] = typer.Option(None, "--disk", "-d", help="Root disk size (e.g. 8G)."),
        bridge: Optional[str] = typer.Option(None, "--bridge", "-b", help="Network bridge."),
        quick: bool = typer.Option(False, "--quick", help="Install Docker and run Portainer directly (no compose/systemd)."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
    ) -> None:
        """Create an LXC container with Docker and Portainer."""
        mock = is_mock()
        name = prompt_required("Container name", console, name)

        try:
            fields = load_defaults()
        except ConfigError as e:
            handle_cli_error(e, console)

        overrides = {
            'vmid': vmid,
            'environment': env,
            'project': project,
            'template': template,
            'storage': storage,
            'memory': memory,
            'cores': cores,
            'disk': disk,
            'bridge': bridge,
        }
        fields.update({k: v for k, v in overrides.items() if v is not None})

        try:
            spec = ContainerSpec(name=name, **fields)
        except ValidationError as e:
            for error in e.errors():
                print_error(console, f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}")
            raise typer.Exit(1)

        console.print(_spec_table(spec))

        if not confirm_action("Create this container?", yes_flag=yes, mock=mock):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        orchestrator = ContainerOrchestrator(mock=mock)
        try:
            result = orchestrator.create(spec, quick=quick)
        except TemplateNotFoundError as e:
            print_error(console, str(e))
            if e.available:
                console.print("[bold]Available templates:[/bold]")
                for line in e.available:
                    console.print(f"  {line}")
            print_info(console, f"Download it with: pveam download {e.storage} {e.template}")
            raise typer.Exit(1)
        except (LockError, VmidInUseError, VmidExhaustedError, ContainerCreateError, ProvisionError) as e:
            handle_cli_error(e, console)

        print_success(console, "Container created successfully")
        summary = Table(show_header=False)
        summary.add_column("Field", style="cyan")
        summary.add_column("Value")
        summary.add_row("Container ID", str(result.vmid))
        summary.add_row("Name", result.name)
        summary.add_row("Hostname", result.hostname)
        summary.add_row("IP Address", result.ip or "unknown")
        console.print(summary)

        if result.ip:
            console.print("\n[bold]Portainer:[/bold]")
            console.print(f"  HTTP:  http://{result.ip}:{PORTAINER_HTTP_PORT}")
            console.print(f"  HTTPS: https://{result.ip}:{PORTAINER_HTTPS_PORT}")
        else:
            print_warning(console, f"Could not read the container IP; check with: pct exec {result.vmid} -- hostname -I")

        console.print(f"\nAdmin password: [dim]pct exec {result.vmid} -- cat {PASSWORD_REFERENCE_FILE}[/dim]")
        console.print("\n[bold]Next steps:[/bold]")
        console.print(f"  1. Set up SSH deployment:  pvekit lxc ssh-setup --id {result.vmid}")
        console.print("  2. Generate a workflow:    pvekit workflow portainer --project <name>")
        console.print("  3. Add the GitHub secrets listed by the workflow command")

    @LxcTyper.command("next-id")
    def next_id_command(
        start: Optional[int] = typer.Option(None, "--start", help="Lowest ID to consider (default 100)."),
    ) -> None:
        """Print the next free container/VM ID (not reserved)."""
        orchestrator = ContainerOrchestrator(mock=is_mock())
        try:
            console.print(str(orchestrator.next_vmid(start)))
        except VmidExhaustedError as e:
            handle_cli_error(e, console)

    @LxcTyper.command("ssh-setup")
    def ssh_setup_command(
        vmid: Optional[int] = typer.Option(None, "--id", "-i", help="Container ID."),
        key_path: Optional[Path] = typer.Option(None, "--key-path", help="Deployment key path (default ~/.ssh/portainer_deploy)."),
    ) -> None:
        """Create a `deploy` user with SSH key access for CI/CD."""
        mock = is_mock()
        if vmid is None:
            raw = prompt_required("Container ID", console)
            if not raw.isdigit():
                print_error(console, f"Invalid container ID: {raw}")
                raise typer.Exit(1)
            vmid = int(raw)

        setup = DeployUserSetup(vmid, mock=mock)
        try:
            setup.verify_container()
        except (ContainerNotFoundError, ContainerNotRunningError) as e:
            handle_cli_error(e, console)

        console.print(f"[dim]Configuring deploy user in container {vmid}...[/dim]")
        if not setup.configure_container():
            print_error(console, f"Failed to configure deploy user in container {vmid}")
            raise typer.Exit(1)

        keys = SSHKeyManager(key_path or get_config().ssh_key, mock=mock)
        try:
            if keys.ensure_key_pair():
                print_success(console, f"Generated SSH key pair at {keys.key_path}")
            else:
                print_info(console, f"Using existing SSH key pair at {keys.key_path}")
            public_key = keys.public_key()
            private_key = keys.private_key()
        except SSHKeyError as e:
            handle_cli_error(e, console)

        if not setup.authorize_key(public_key):
            print_error(console, f"Failed to add public key to container {vmid}")
            raise typer.Exit(1)

        ip = setup.container_ip()
        print_success(console, f"Deploy user ready in container {vmid}")
        if ip:
            console.print(f"  Test with: ssh -i {keys.key_path} deploy@{ip}")

        console.print(Panel(private_key.rstrip(), title="Private key (PORTAINER_SSH_KEY)", border_style="yellow"))

        secrets = Table(title="GitHub repository secrets", show_header=True, header_style="bold cyan")
        secrets.add_column("Secret", no_wrap=True)
        secrets.add_column("Value")
        secrets.add_column("Required")
        for hint in deployment_secrets(ip, keys.key_path):
            secrets.add_row(hint.name, hint.value, "yes" if hint.required else "for API deployment")
        console.print(secrets)

    root.add_typer(LxcTyper, name="lxc")
