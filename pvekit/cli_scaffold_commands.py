"""Solution scaffolding commands."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from pvekit.cli_support import handle_cli_error, is_mock, print_error, print_success, prompt_required
from pvekit.models.project import ProjectName
from pvekit.scaffold import ScaffoldError, SolutionScaffolder

ScaffoldTyper = typer.Typer(help="Scaffold application solutions")


def register_scaffold_commands(root: typer.Typer, console: Console) -> None:
    """Attach scaffold commands to the main CLI."""

    @ScaffoldTyper.command("dotnet")
    def dotnet_command(
        solution: Optional[str] = typer.Option(None, "--solution", "-s", help="Solution name."),
        no_web: bool = typer.Option(False, "--no-web", help="Skip the Vue frontend."),
        skip_tools: bool = typer.Option(False, "--skip-tools", help="Write minimal project files instead of running dotnet/npm."),
        force: bool = typer.Option(False, "--force", help="Write into a non-empty directory."),
        output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Parent directory for the solution."),
    ) -> None:
        """Scaffold a .NET Web API (and Vue web) solution with Dockerfiles."""
        raw = prompt_required("Solution name", console, solution)
        try:
            solution_name = ProjectName(raw=raw)
        except ValidationError:
            print_error(console, "Solution name cannot be empty")
            raise typer.Exit(1)

        scaffolder = SolutionScaffolder(mock=is_mock())
        try:
            root_dir = scaffolder.scaffold(
                solution_name,
                output_dir,
                include_web=not no_web,
                run_tools=not skip_tools,
                force=force,
            )
        except ScaffoldError as e:
            handle_cli_error(e, console)

        print_success(console, f"Solution scaffolded at {root_dir}")
        console.print("\n[bold]Next steps:[/bold]")
        console.print(f"  cd {root_dir}")
        console.print(f"  pvekit workflow build-deploy --solution {solution_name.slug}")

    root.add_typer(ScaffoldTyper, name="scaffold")
