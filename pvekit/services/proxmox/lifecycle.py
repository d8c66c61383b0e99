"""Container lifecycle management (create, start, exec)."""
import shlex
import subprocess
import time
from types import SimpleNamespace
from typing import List, Optional

from pvekit.core.config import get_config
from pvekit.core.logger import get_logger
from pvekit.models.container import ContainerSpec

logger = get_logger(__name__)


class ContainerLifecycle:
    """Manages LXC container lifecycle operations."""

    def __init__(self, mock: bool = False):
        self.mock = mock

    def build_create_command(self, spec: ContainerSpec, vmid: int) -> List[str]:
        """Build the `pct create` argv for a Docker host container."""
        return [
            'pct', 'create', str(vmid), spec.ostemplate,
            '--hostname', spec.hostname,
            '--memory', str(spec.memory),
            '--cores', str(spec.cores),
            '--rootfs', spec.rootfs,
            '--net0', spec.net0,
            # Docker inside an unprivileged container needs nesting
            '--unprivileged', '1',
            '--features', 'nesting=1',
            '--onboot', '1',
            '--startup', 'order=1',
        ]

    def create_container(self, spec: ContainerSpec, vmid: int) -> bool:
        """Create a new LXC container.

        Args:
            spec: Container specification
            vmid: VMID to create (already allocated by the caller)

        Returns:
            True if created successfully
        """
        cmd = self.build_create_command(spec, vmid)

        if self.mock:
            logger.info(f"MOCK: Would create container {vmid} ({spec.hostname})")
            return True

        try:
            logger.info(f"Creating container {vmid} ({spec.hostname}) with template {spec.template}")
            logger.debug(f"Command: {shlex.join(cmd)}")
            subprocess.run(cmd, capture_output=True, text=True, check=True)
            logger.info(f"✓ Container {vmid} created successfully")
            return True

        except subprocess.CalledProcessError as e:
            logger.error(f"Failed to create container {vmid}: {e}")
            if e.stderr:
                logger.error(f"Error output: {e.stderr}")
            return False

    def start_container(self, vmid: int) -> bool:
        """Start a container.

        Returns:
            True if started (or already running)
        """
        if self.mock:
            logger.info(f"MOCK: Would start container {vmid}")
            return True

        try:
            logger.info(f"Starting container {vmid}")
            subprocess.run(
                ['pct', 'start', str(vmid)],
                capture_output=True,
                text=True,
                check=True
            )
            logger.info(f"✓ Container {vmid} started")
            return True

        except subprocess.CalledProcessError as e:
            if e.stderr and 'already running' in e.stderr.lower():
                logger.info(f"Container {vmid} already running")
                return True
            logger.error(f"Failed to start container {vmid}: {e}")
            return False

    def wait_until_ready(self, vmid: int, seconds: Optional[int] = None) -> None:
        """Give the container's init time to bring up networking."""
        seconds = get_config().boot_wait if seconds is None else seconds
        if self.mock or seconds <= 0:
            return
        logger.info(f"Waiting {seconds}s for container {vmid} to be ready...")
        time.sleep(seconds)

    def run_script(self, vmid: int, script: str, description: str = "script") -> bool:
        """Run a bash script inside the container via `pct exec ... bash -c`.

        Args:
            vmid: Container ID
            script: Bash script text
            description: Human readable step name for logs

        Returns:
            True if the script exited 0
        """
        if self.mock:
            logger.info(f"MOCK: Would run {description} in container {vmid}")
            return True

        cmd = ['pct', 'exec', str(vmid), '--', 'bash', '-c', script]

        try:
            logger.info(f"{description} in container {vmid}...")
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=get_config().command_timeout
            )
            if result.stdout:
                logger.debug(result.stdout)
            return True

        except subprocess.CalledProcessError as e:
            logger.error(f"✗ {description} failed in container {vmid} (exit {e.returncode})")
            if e.stderr:
                logger.error(f"Error output: {e.stderr}")
            return False
        except subprocess.TimeoutExpired:
            logger.error(f"✗ {description} timed out in container {vmid}")
            return False

    def exec_command(
        self,
        vmid: int,
        command: List[str],
        input_text: Optional[str] = None,
    ):
        """Run a command inside the container and return the completed process.

        Does not raise on non-zero exit; callers inspect `returncode`.
        """
        base_cmd = ['pct', 'exec', str(vmid), '--', *command]

        if self.mock:
            logger.info(f"MOCK: Would execute: {shlex.join(base_cmd)}")
            return SimpleNamespace(returncode=0, stdout="", stderr="")

        logger.debug(f"Executing in container {vmid}: {shlex.join(base_cmd)}")
        return subprocess.run(
            base_cmd,
            input=input_text,
            capture_output=True,
            text=True,
            check=False
        )
