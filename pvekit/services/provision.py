"""Docker and Portainer provisioning inside a fresh LXC container.

Every step is one bash script run through `pct exec`. Steps run in order
and the first failure stops the run.
"""
from typing import Callable, List, Tuple

import yaml

from pvekit.core.logger import get_logger
from pvekit.services.proxmox.lifecycle import ContainerLifecycle

logger = get_logger(__name__)

PORTAINER_DIR = "/opt/portainer"
PORTAINER_IMAGE = "portainer/portainer-ce:latest"
PORTAINER_HTTP_PORT = 9000
PORTAINER_HTTPS_PORT = 9443
PASSWORD_FILE = f"{PORTAINER_DIR}/admin_password"
PASSWORD_REFERENCE_FILE = "/root/portainer_admin_password.txt"
DEPLOYMENTS_DIR = "/opt/deployments"
DEPLOYMENT_ENVIRONMENTS = ("staging", "production")

PREREQUISITES_SCRIPT = """
set -e
export DEBIAN_FRONTEND=noninteractive
apt-get update && apt-get upgrade -y
apt-get install -y curl wget gnupg lsb-release ca-certificates
"""

DOCKER_SCRIPT = """
set -e
export DEBIAN_FRONTEND=noninteractive
curl -fsSL https://download.docker.com/linux/ubuntu/gpg | gpg --batch --yes --dearmor -o /usr/share/keyrings/docker-archive-keyring.gpg
echo "deb [arch=$(dpkg --print-architecture) signed-by=/usr/share/keyrings/docker-archive-keyring.gpg] https://download.docker.com/linux/ubuntu $(lsb_release -cs) stable" > /etc/apt/sources.list.d/docker.list
apt-get update
apt-get install -y docker-ce docker-ce-cli containerd.io docker-compose-plugin
systemctl enable docker
systemctl start docker
"""

COMPOSE_STANDALONE_SCRIPT = """
set -e
DOCKER_COMPOSE_VERSION=$(curl -s https://api.github.com/repos/docker/compose/releases/latest | grep '"tag_name"' | cut -d'"' -f4)
if [ -z "$DOCKER_COMPOSE_VERSION" ]; then
    echo "Could not determine latest docker-compose release" >&2
    exit 1
fi
curl -fL "https://github.com/docker/compose/releases/download/${DOCKER_COMPOSE_VERSION}/docker-compose-$(uname -s)-$(uname -m)" -o /usr/local/bin/docker-compose
chmod +x /usr/local/bin/docker-compose
ln -sf /usr/local/bin/docker-compose /usr/bin/docker-compose
"""

PORTAINER_SYSTEMD_UNIT = f"""[Unit]
Description=Portainer
Requires=docker.service
After=docker.service

[Service]
Type=oneshot
RemainAfterExit=true
WorkingDirectory={PORTAINER_DIR}
ExecStart=/usr/local/bin/docker-compose up -d
ExecStop=/usr/local/bin/docker-compose down
TimeoutStartSec=0

[Install]
WantedBy=multi-user.target
"""


def portainer_compose() -> dict:
    """Compose document running Portainer CE with a preset admin password."""
    return {
        'services': {
            'portainer': {
                'image': PORTAINER_IMAGE,
                'container_name': 'portainer',
                'restart': 'unless-stopped',
                'ports': [
                    f'{PORTAINER_HTTP_PORT}:{PORTAINER_HTTP_PORT}',
                    f'{PORTAINER_HTTPS_PORT}:{PORTAINER_HTTPS_PORT}',
                ],
                'volumes': [
                    '/var/run/docker.sock:/var/run/docker.sock',
                    'portainer_data:/data',
                    f'{PASSWORD_FILE}:/tmp/portainer_password:ro',
                ],
                'command': '--admin-password-file /tmp/portainer_password',
            },
        },
        'volumes': {'portainer_data': None},
    }


def api_compose_template() -> dict:
    """Compose template for .NET API deployments; ${VARS} are left for compose."""
    return {
        'services': {
            'api': {
                'image': '${API_IMAGE:-mcr.microsoft.com/dotnet/samples:aspnetapp}',
                'container_name': '${PROJECT_NAME:-myapi}-${ENVIRONMENT:-staging}',
                'restart': 'unless-stopped',
                'ports': [
                    '${API_PORT:-5000}:80',
                    '${API_HTTPS_PORT:-5001}:443',
                ],
                'environment': [
                    'ASPNETCORE_ENVIRONMENT=${ENVIRONMENT:-Development}',
                    'ASPNETCORE_URLS=https://+:443;http://+:80',
                    'ASPNETCORE_Kestrel__Certificates__Default__Password=${CERT_PASSWORD}',
                    'ASPNETCORE_Kestrel__Certificates__Default__Path=/https/aspnetapp.pfx',
                ],
                'volumes': [
                    '${CERT_PATH:-./certs}:/https/:ro',
                    '${APP_DATA:-./data}:/app/data',
                ],
                'networks': ['api-network'],
            },
        },
        'networks': {'api-network': {'driver': 'bridge'}},
    }


def write_file_script(path: str, content: str) -> str:
    """Bash snippet writing content verbatim through a quoted heredoc."""
    return f"cat > {path} << 'PVEKIT_EOF'\n{content.rstrip()}\nPVEKIT_EOF\n"


def dump_yaml(document: dict) -> str:
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)


class ProvisionError(Exception):
    """Raised when a provisioning step fails."""

    def __init__(self, vmid: int, step: str):
        super().__init__(f"{step} failed in container {vmid}")
        self.vmid = vmid
        self.step = step


class DockerHostProvisioner:
    """Turns a bare Ubuntu container into a Docker + Portainer host."""

    def __init__(self, lifecycle: ContainerLifecycle = None, mock: bool = False):
        self.mock = mock
        self.lifecycle = lifecycle or ContainerLifecycle(mock=mock)

    def portainer_setup_script(self) -> str:
        return (
            "set -e\n"
            f"mkdir -p {PORTAINER_DIR}\n"
            f"cd {PORTAINER_DIR}\n"
            + write_file_script("docker-compose.yml", dump_yaml(portainer_compose()))
            + 'ADMIN_PASSWORD=$(openssl rand -base64 32)\n'
            f'echo "$ADMIN_PASSWORD" > {PASSWORD_FILE}\n'
            f'chmod 600 {PASSWORD_FILE}\n'
            f'echo "Portainer admin password: $ADMIN_PASSWORD" > {PASSWORD_REFERENCE_FILE}\n'
            f'chmod 600 {PASSWORD_REFERENCE_FILE}\n'
        )

    def portainer_start_script(self) -> str:
        return f"set -e\ncd {PORTAINER_DIR}\ndocker-compose up -d\n"

    def systemd_unit_script(self) -> str:
        return (
            "set -e\n"
            + write_file_script("/etc/systemd/system/portainer.service", PORTAINER_SYSTEMD_UNIT)
            + "systemctl daemon-reload\n"
            + "systemctl enable portainer.service\n"
        )

    def deployment_dirs_script(self) -> str:
        dirs = " ".join(f"{DEPLOYMENTS_DIR}/{env}" for env in DEPLOYMENT_ENVIRONMENTS)
        return (
            "set -e\n"
            f"mkdir -p {dirs}\n"
            f"chmod 755 {dirs}\n"
            + write_file_script(
                f"{DEPLOYMENTS_DIR}/docker-compose.template.yml",
                dump_yaml(api_compose_template()),
            )
        )

    def quick_portainer_script(self) -> str:
        """Single `docker run` Portainer without compose or systemd."""
        return (
            "set -e\n"
            f"mkdir -p {PORTAINER_DIR}\n"
            'ADMIN_PASSWORD=$(openssl rand -base64 32)\n'
            f'echo "$ADMIN_PASSWORD" > {PASSWORD_FILE}\n'
            f'chmod 600 {PASSWORD_FILE}\n'
            f'echo "$ADMIN_PASSWORD" > {PASSWORD_REFERENCE_FILE}\n'
            f'chmod 600 {PASSWORD_REFERENCE_FILE}\n'
            "docker run -d --name portainer --restart unless-stopped "
            f"-p {PORTAINER_HTTP_PORT}:{PORTAINER_HTTP_PORT} "
            f"-p {PORTAINER_HTTPS_PORT}:{PORTAINER_HTTPS_PORT} "
            "-v /var/run/docker.sock:/var/run/docker.sock "
            "-v portainer_data:/data "
            f"-v {PASSWORD_FILE}:/tmp/portainer_password:ro "
            f"{PORTAINER_IMAGE} --admin-password-file /tmp/portainer_password\n"
        )

    def steps(self, quick: bool = False) -> List[Tuple[str, Callable[[], str]]]:
        """Ordered (description, script factory) pairs."""
        if quick:
            return [
                ("Installing Docker", lambda: PREREQUISITES_SCRIPT + DOCKER_SCRIPT),
                ("Setting up Portainer", self.quick_portainer_script),
            ]
        return [
            ("Updating system and installing prerequisites", lambda: PREREQUISITES_SCRIPT),
            ("Installing Docker", lambda: DOCKER_SCRIPT),
            ("Installing Docker Compose", lambda: COMPOSE_STANDALONE_SCRIPT),
            ("Setting up Portainer", self.portainer_setup_script),
            ("Starting Portainer", self.portainer_start_script),
            ("Creating Portainer systemd service", self.systemd_unit_script),
            ("Creating deployment directories", self.deployment_dirs_script),
        ]

    def provision(self, vmid: int, quick: bool = False) -> None:
        """Run every provisioning step in order.

        Raises:
            ProvisionError: Naming the first step that failed
        """
        logger.info(f"Provisioning Docker host in container {vmid}")

        for description, script in self.steps(quick=quick):
            if not self.lifecycle.run_script(vmid, script(), description):
                raise ProvisionError(vmid, description)

        logger.info(f"✓ Docker and Portainer ready in container {vmid}")
