"""GitHub Actions workflow generation commands."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from pvekit.cli_support import handle_cli_error, print_error, print_success, prompt_required
from pvekit.models.project import DeploymentType, ProjectName
from pvekit.workflows import WorkflowError, WorkflowGenerator, WorkflowSummary

WorkflowTyper = typer.Typer(help="Generate GitHub Actions deployment workflows")

TYPE_CHOICES = {
    '1': DeploymentType.API_ONLY,
    '2': DeploymentType.WEBAPP,
    DeploymentType.API_ONLY.value: DeploymentType.API_ONLY,
    DeploymentType.WEBAPP.value: DeploymentType.WEBAPP,
}


def _project_name(raw: str, console: Console) -> ProjectName:
    try:
        return ProjectName(raw=raw)
    except ValidationError:
        print_error(console, "Project name cannot be empty")
        raise typer.Exit(1)


def _print_summary(summary: WorkflowSummary, console: Console) -> None:
    print_success(console, f"GitHub Actions workflow generated: {summary.path}")

    console.print("\n[bold]Docker images:[/bold]")
    for image in summary.images:
        console.print(f"  <DOCKER_USERNAME>/{image}")

    table = Table(title="Containers", show_header=True, header_style="bold cyan")
    table.add_column("Container")
    table.add_column("Host port", justify="right")
    for name, port in summary.containers:
        table.add_row(name, str(port))
    console.print(table)

    console.print("[bold]Expected Dockerfiles:[/bold]")
    for dockerfile in summary.dockerfiles:
        console.print(f"  {dockerfile}")

    console.print("\n[bold]Required GitHub secrets:[/bold]")
    for secret in summary.secrets:
        console.print(f"  {secret}")


def register_workflow_commands(root: typer.Typer, console: Console) -> None:
    """Attach workflow commands to the main CLI."""

    @WorkflowTyper.command("portainer")
    def portainer_command(
        project: Optional[str] = typer.Option(None, "--project", "-p", help="Project name."),
        deployment_type: Optional[str] = typer.Option(None, "--type", "-t", help="api-only or webapp."),
        output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Repository root to write into."),
    ) -> None:
        """Generate a build + staging/production Portainer deploy workflow."""
        project_name = _project_name(prompt_required("Project name", console, project), console)

        if deployment_type is None:
            console.print("Deployment type:")
            console.print("  1) API only")
            console.print("  2) Web app (API + frontend)")
            deployment_type = typer.prompt("Choose", default="", show_default=False)

        choice = TYPE_CHOICES.get(deployment_type.strip().lower())
        if choice is None:
            print_error(console, f"Invalid deployment type: {deployment_type}")
            raise typer.Exit(1)

        try:
            summary = WorkflowGenerator().write_portainer_workflow(project_name, choice, output_dir)
        except (WorkflowError, OSError) as e:
            handle_cli_error(e, console)

        _print_summary(summary, console)

    @WorkflowTyper.command("build-deploy")
    def build_deploy_command(
        solution: Optional[str] = typer.Option(None, "--solution", "-s", help="Solution name."),
        output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Repository root to write into."),
    ) -> None:
        """Generate the path-filtered API/web build-and-deploy workflow."""
        solution_name = _project_name(prompt_required("Solution name", console, solution), console)

        try:
            summary = WorkflowGenerator().write_build_deploy_workflow(solution_name, output_dir)
        except (WorkflowError, OSError) as e:
            handle_cli_error(e, console)

        _print_summary(summary, console)

    root.add_typer(WorkflowTyper, name="workflow")
