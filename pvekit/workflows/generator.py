"""GitHub Actions workflow generation for Portainer deployments.

Two workflow shapes are supported:

- Portainer workflow (`deploy-to-portainer.yml`): builds the API (and
  optionally the web frontend) image for every push and deploys staging
  then production through the Portainer API.
- Build-and-deploy workflow (`deploy.yml`): monorepo layout with
  `dorny/paths-filter`, so only the changed app is rebuilt and redeployed.

Templates use square-bracket Jinja2 delimiters (`[[ ]]`, `[% %]`) so that
GitHub expressions such as `${{ secrets.X }}` pass through verbatim.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from pvekit.core.logger import get_logger
from pvekit.models.deployment import DeploymentTarget
from pvekit.models.project import DeploymentType, ProjectName

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
WORKFLOW_DIR = Path(".github") / "workflows"
PORTAINER_WORKFLOW_FILE = "deploy-to-portainer.yml"
BUILD_DEPLOY_WORKFLOW_FILE = "deploy.yml"

REQUIRED_SECRETS = [
    "DOCKER_USERNAME",
    "DOCKER_PASSWORD",
    "PORTAINER_URL",
    "PORTAINER_USERNAME",
    "PORTAINER_PASSWORD",
    "PORTAINER_ENDPOINT_ID",
]

DOCKER_USER = "${{ secrets.DOCKER_USERNAME }}"

# Host ports per (app, stage) for each workflow shape
PORTAINER_PORTS = {
    ('api', 'staging'): 5001,
    ('api', 'production'): 5000,
    ('web', 'staging'): 3001,
    ('web', 'production'): 3000,
}
BUILD_DEPLOY_PORTS = {
    ('api', 'staging'): 3001,
    ('web', 'staging'): 3002,
    ('api', 'production'): 3000,
    ('web', 'production'): 3003,
}


class WorkflowError(Exception):
    """Raised when a workflow template cannot be rendered."""
    pass


@dataclass
class BuildPlan:
    """One image build job."""
    job: str
    app: str
    label: str
    env_var: str
    image_name: str
    meta_step: str
    meta_id: str
    build_step: str
    context: str
    dockerfile: str
    paths: List[str] = field(default_factory=list)


@dataclass
class ContainerPlan:
    """One container a deploy job replaces."""
    app: str
    label: str
    name: str
    image: str
    host_port: int
    body: str
    var: str = ""


@dataclass
class DeployPlan:
    """One deploy job (a stage, optionally restricted to one app)."""
    job: str
    stage: str
    label: str
    tag: str
    needs: List[str]
    environment: Optional[str]
    containers: List[ContainerPlan]
    app: Optional[str] = None
    step_name: str = ""

    @property
    def needs_yaml(self) -> str:
        if len(self.needs) == 1:
            return self.needs[0]
        return "[" + ", ".join(self.needs) + "]"


@dataclass
class WorkflowSummary:
    """What the operator needs to know after generating a workflow."""
    path: Path
    project: str
    images: List[str]
    containers: List[Tuple[str, int]]
    dockerfiles: List[str]
    secrets: List[str] = field(default_factory=lambda: list(REQUIRED_SECRETS))


def _json_body(target: DeploymentTarget, image_override: Optional[str] = None) -> str:
    body = target.to_create_body()
    if image_override is not None:
        body["Image"] = image_override
    return json.dumps(body, indent=2)


def _stage_label(stage: str) -> str:
    return stage.capitalize()


class WorkflowGenerator:
    """Renders and writes GitHub Actions workflow files."""

    def __init__(self, template_dir: Optional[Path] = None):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            block_start_string='[%',
            block_end_string='%]',
            variable_start_string='[[',
            variable_end_string=']]',
            comment_start_string='[#',
            comment_end_string='#]',
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def _render(self, template_name: str, context: Dict) -> str:
        try:
            return self.env.get_template(template_name).render(**context)
        except TemplateError as e:
            raise WorkflowError(f"Failed to render {template_name}: {e}") from e

    # ==================== Portainer workflow ====================

    def portainer_plan(self, project: ProjectName, deployment_type: DeploymentType) -> Dict:
        """Build the job plan for the Portainer workflow."""
        slug, title = project.slug, project.title
        webapp = deployment_type == DeploymentType.WEBAPP
        apps = ['api', 'web'] if webapp else ['api']

        builds = []
        for app in apps:
            label = 'API' if app == 'api' else 'Web'
            suffix = 'Api' if app == 'api' else 'Web'
            builds.append(BuildPlan(
                job=f'build-{app}' if webapp else 'build',
                app=app,
                label=label,
                env_var=f'{app.upper()}_IMAGE_NAME' if webapp else 'IMAGE_NAME',
                image_name=f'{slug}-{app}',
                meta_step=f'Extract metadata ({label})' if webapp else 'Extract metadata',
                meta_id='meta',
                build_step=f'Build and push {label} Docker image' if webapp else 'Build and push Docker image',
                context=f'./{title}',
                dockerfile=f'./{title}/src/{title}.{suffix}/Dockerfile',
            ))

        build_jobs = [b.job for b in builds]
        deploys = []
        for stage, tag, short in (('staging', 'staging', 'staging'), ('production', 'latest', 'prod')):
            containers = []
            for app in apps:
                name = f'{slug}-{app}-{short}'
                if app == 'api':
                    env = [f'ASPNETCORE_ENVIRONMENT={_stage_label(stage)}']
                else:
                    env = [f'NODE_ENV={stage}', f'API_BASE_URL=http://{slug}-api-{short}']
                target = DeploymentTarget(
                    name=name,
                    image=f'{DOCKER_USER}/{slug}-{app}',
                    tag=tag,
                    host_port=PORTAINER_PORTS[(app, stage)],
                    env=env,
                    network=f'{slug}-network' if webapp else None,
                )
                containers.append(ContainerPlan(
                    app=app,
                    label='API' if app == 'api' else 'Web',
                    name=name,
                    image=f'{slug}-{app}',
                    host_port=target.host_port,
                    body=_json_body(target),
                    var=f'{app.upper()}_' if webapp else '',
                ))
            needs = list(build_jobs)
            if stage == 'production':
                needs.append('deploy-staging')
            deploys.append(DeployPlan(
                job=f'deploy-{stage}',
                stage=stage,
                label=_stage_label(stage),
                tag=tag,
                needs=needs,
                environment=stage,
                containers=containers,
            ))

        return {
            'workflow_name': f'Deploy {title} to Portainer' if webapp else f'Deploy {title} API to Portainer',
            'slug': slug,
            'webapp': webapp,
            'builds': builds,
            'deploys': deploys,
        }

    def render_portainer_workflow(self, project: ProjectName, deployment_type: DeploymentType) -> str:
        return self._render('portainer.yml.j2', self.portainer_plan(project, deployment_type))

    # ==================== Build-and-deploy workflow ====================

    def build_deploy_plan(self, solution: ProjectName) -> Dict:
        """Build the job plan for the path-filtered monorepo workflow."""
        slug, upper = solution.slug, solution.upper
        workflow_path = f'.github/workflows/{BUILD_DEPLOY_WORKFLOW_FILE}'

        builds = [
            BuildPlan(
                job='build-api',
                app='api',
                label='API',
                env_var='API_IMAGE_NAME',
                image_name=f'{DOCKER_USER}/{slug}-api',
                meta_step='Extract API metadata',
                meta_id='api-meta',
                build_step='Build and push API Docker image',
                context='.',
                dockerfile=f'./src/{upper}.Api/Dockerfile.api',
                paths=[f'src/{upper}.Api/**', workflow_path],
            ),
            BuildPlan(
                job='build-web',
                app='web',
                label='Web',
                env_var='WEB_IMAGE_NAME',
                image_name=f'{DOCKER_USER}/{slug}-web',
                meta_step='Extract Web metadata',
                meta_id='web-meta',
                build_step='Build and push Web Docker image',
                context=f'./src/{slug}.web',
                dockerfile=f'./src/{slug}.web/Dockerfile.web',
                paths=[f'src/{slug}.web/**', workflow_path],
            ),
        ]

        names = {
            ('api', 'staging'): f'{slug}-staging',
            ('web', 'staging'): f'{slug}-web-staging',
            ('api', 'production'): f'{slug}-production',
            ('web', 'production'): f'{slug}-web-production',
        }

        deploys = []
        for stage in ('staging', 'production'):
            for build in builds:
                app = build.app
                if app == 'api':
                    env = [
                        f'ASPNETCORE_ENVIRONMENT={_stage_label(stage)}',
                        'ASPNETCORE_URLS=http://+:8080',
                    ]
                    container_port = 8080
                else:
                    env = []
                    container_port = 80
                target = DeploymentTarget(
                    name=names[(app, stage)],
                    image=f'{slug}-{app}',
                    host_port=BUILD_DEPLOY_PORTS[(app, stage)],
                    container_port=container_port,
                    env=env,
                )
                var = f'{app.upper()}_'
                needs = ['changes', build.job]
                if stage == 'production':
                    needs.append(f'deploy-{app}-staging')
                deploys.append(DeployPlan(
                    job=f'deploy-{app}-{stage}',
                    stage=stage,
                    label=_stage_label(stage),
                    tag='',
                    needs=needs,
                    environment='production' if stage == 'production' else None,
                    app=app,
                    step_name=f'Deploy {build.label} to {_stage_label(stage)} via Portainer API',
                    containers=[ContainerPlan(
                        app=app,
                        label=build.label,
                        name=target.name,
                        image=f'{slug}-{app}',
                        host_port=target.host_port,
                        body=_json_body(target, image_override=f"'${{{var}IMAGE_FULL}}'"),
                        var=var,
                    )],
                ))

        return {
            'slug': slug,
            'upper': upper,
            'builds': builds,
            'deploys': deploys,
        }

    def render_build_deploy_workflow(self, solution: ProjectName) -> str:
        return self._render('build-deploy.yml.j2', self.build_deploy_plan(solution))

    # ==================== Writing ====================

    def _write(self, output_dir: Path, filename: str, content: str) -> Path:
        workflow_dir = Path(output_dir) / WORKFLOW_DIR
        workflow_dir.mkdir(parents=True, exist_ok=True)
        path = workflow_dir / filename
        path.write_text(content)
        logger.info(f"✓ GitHub Actions workflow generated: {path}")
        return path

    def write_portainer_workflow(
        self,
        project: ProjectName,
        deployment_type: DeploymentType,
        output_dir: Path = Path("."),
    ) -> WorkflowSummary:
        """Render and write `.github/workflows/deploy-to-portainer.yml`."""
        plan = self.portainer_plan(project, deployment_type)
        content = self._render('portainer.yml.j2', plan)
        path = self._write(output_dir, PORTAINER_WORKFLOW_FILE, content)

        containers = [
            (c.name, c.host_port)
            for deploy in plan['deploys']
            for c in deploy.containers
        ]
        return WorkflowSummary(
            path=path,
            project=project.title,
            images=[b.image_name for b in plan['builds']],
            containers=containers,
            dockerfiles=[b.dockerfile for b in plan['builds']],
        )

    def write_build_deploy_workflow(
        self,
        solution: ProjectName,
        output_dir: Path = Path("."),
    ) -> WorkflowSummary:
        """Render and write `.github/workflows/deploy.yml`."""
        plan = self.build_deploy_plan(solution)
        content = self._render('build-deploy.yml.j2', plan)
        path = self._write(output_dir, BUILD_DEPLOY_WORKFLOW_FILE, content)

        return WorkflowSummary(
            path=path,
            project=solution.slug,
            images=[f'{solution.slug}-{b.app}' for b in plan['builds']],
            containers=[
                (d.containers[0].name, d.containers[0].host_port)
                for d in plan['deploys']
            ],
            dockerfiles=[b.dockerfile.lstrip('./') for b in plan['builds']],
        )
