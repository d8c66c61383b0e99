"""Scaffolding for .NET Web API + Vue web solutions.

The layout matches what the build-and-deploy workflow expects:

    <slug>/
      <UPPER>.sln
      src/<UPPER>.Api/         Dockerfile.api, appsettings*.json
      src/<slug>.web/          Dockerfile.web, nginx.conf
"""

import subprocess
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import TemplateError

from pvekit.core.config import get_config
from pvekit.core.logger import get_logger
from pvekit.models.project import ProjectName
from .templates import TemplateEngine

logger = get_logger(__name__)

TARGET_FRAMEWORK = "net8.0"
API_PORT = 8080
APPSETTINGS_ENVIRONMENTS = ("Staging", "Production")


class ScaffoldError(Exception):
    """Raised when a solution cannot be scaffolded."""
    pass


class SolutionScaffolder:
    """Lays out a .NET API (and optional Vue frontend) solution."""

    def __init__(self, template_dir: Optional[Path] = None, mock: bool = False):
        self.template_dir = template_dir or Path(__file__).parent / "templates"
        self.engine = TemplateEngine(self.template_dir)
        self.mock = mock

    def context(self, solution: ProjectName) -> Dict[str, Any]:
        return {
            'slug': solution.slug,
            'title': solution.title,
            'upper': solution.upper,
            'api_project': f"{solution.upper}.Api",
            'web_project': f"{solution.slug}.web",
            'framework': TARGET_FRAMEWORK,
            'api_port': API_PORT,
        }

    def scaffold(
        self,
        solution: ProjectName,
        output_dir: Optional[Path] = None,
        include_web: bool = True,
        run_tools: bool = True,
        force: bool = False,
    ) -> Path:
        """Scaffold a complete solution.

        Args:
            solution: Solution name
            output_dir: Parent directory (defaults to current dir)
            include_web: Also create the Vue frontend
            run_tools: Use `dotnet`/`npm` generators; otherwise write minimal
                project files from templates
            force: Write into an existing non-empty directory

        Returns:
            Path to the solution root

        Raises:
            ScaffoldError: Directory not empty, tool missing or failing,
                template error
        """
        output_dir = Path(output_dir) if output_dir else Path.cwd()
        root = output_dir / solution.slug

        if root.exists() and any(root.iterdir()) and not force:
            raise ScaffoldError(f"Directory {root} is not empty (use --force to overwrite)")

        root.mkdir(parents=True, exist_ok=True)
        ctx = self.context(solution)
        logger.info(f"✨ Scaffolding solution {solution.upper} in {root}")

        self._scaffold_api(root, ctx, run_tools)
        if include_web:
            self._scaffold_web(root, ctx, run_tools)

        self._render('gitignore', ctx, root / ".gitignore")
        self._render('README.md', dict(ctx, include_web=include_web), root / "README.md")

        logger.info(f"✓ Solution scaffolded at {root}")
        return root

    # ==================== API ====================

    def _scaffold_api(self, root: Path, ctx: Dict[str, Any], run_tools: bool) -> None:
        api_project = ctx['api_project']
        api_dir = root / "src" / api_project

        if run_tools and not self.mock:
            self._run(['dotnet', 'new', 'sln', '-n', ctx['upper']], cwd=root)
            self._run(
                ['dotnet', 'new', 'webapi', '-n', api_project, '-o', f"src/{api_project}"],
                cwd=root,
            )
            self._run(
                ['dotnet', 'sln', f"{ctx['upper']}.sln", 'add', f"src/{api_project}/{api_project}.csproj"],
                cwd=root,
            )
        else:
            if self.mock and run_tools:
                logger.info(f"MOCK: Would run dotnet new webapi -n {api_project}")
            project_guid = str(uuid.uuid4()).upper()
            self._render('sln', dict(ctx, project_guid=project_guid), root / f"{ctx['upper']}.sln")
            self._render('csproj', ctx, api_dir / f"{api_project}.csproj")
            self._render('Program.cs', ctx, api_dir / "Program.cs")

        self._render('appsettings.json', ctx, api_dir / "appsettings.json")
        for environment in APPSETTINGS_ENVIRONMENTS:
            self._render(
                'appsettings.environment.json',
                dict(ctx, environment=environment),
                api_dir / f"appsettings.{environment}.json",
            )
        self._render('Dockerfile.api', ctx, api_dir / "Dockerfile.api")

    # ==================== Web ====================

    def _scaffold_web(self, root: Path, ctx: Dict[str, Any], run_tools: bool) -> None:
        web_project = ctx['web_project']
        src_dir = root / "src"
        web_dir = src_dir / web_project

        if run_tools and not self.mock:
            src_dir.mkdir(parents=True, exist_ok=True)
            self._run(['npm', 'create', 'vue@latest', web_project, '--', '--default'], cwd=src_dir)
            self._run(['npm', 'install'], cwd=web_dir)
        else:
            if self.mock and run_tools:
                logger.info(f"MOCK: Would run npm create vue@latest {web_project}")
            self._render('package.json', ctx, web_dir / "package.json")
            self._render('index.html', ctx, web_dir / "index.html")
            self._render('main.js', ctx, web_dir / "src" / "main.js")

        self._render('Dockerfile.web', ctx, web_dir / "Dockerfile.web")
        self._render('nginx.conf', ctx, web_dir / "nginx.conf")

    # ==================== Helpers ====================

    def _render(self, template_name: str, ctx: Dict[str, Any], dest: Path) -> Path:
        try:
            return self.engine.render_to(template_name, ctx, dest)
        except TemplateError as e:
            raise ScaffoldError(f"Failed to render {template_name}: {e}") from e

    def _run(self, cmd: List[str], cwd: Path) -> None:
        logger.info(f"Running: {' '.join(cmd)}")
        try:
            subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                check=True,
                timeout=get_config().command_timeout,
            )
        except FileNotFoundError as e:
            raise ScaffoldError(f"{cmd[0]} not found; install it or use --skip-tools") from e
        except subprocess.CalledProcessError as e:
            raise ScaffoldError(f"{' '.join(cmd)} failed: {e.stderr or e}") from e
        except subprocess.TimeoutExpired as e:
            raise ScaffoldError(f"{' '.join(cmd)} timed out") from e
