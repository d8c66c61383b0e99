"""High-level container orchestration (allocate, create, start, provision)."""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pvekit.core.config import get_config
from pvekit.core.lock import vmid_lock
from pvekit.core.logger import get_logger
from pvekit.models.container import ContainerSpec
from pvekit.services.provision import DockerHostProvisioner
from .discovery import GuestDiscovery
from .lifecycle import ContainerLifecycle
from .templates import TemplateManager
from .vmid import VmidAllocator

logger = get_logger(__name__)


class TemplateNotFoundError(Exception):
    """Raised when the requested template is not present in the storage."""

    def __init__(self, template: str, storage: str, available: List[str]):
        super().__init__(f"Template {template} not found in {storage}")
        self.template = template
        self.storage = storage
        self.available = available


class ContainerCreateError(Exception):
    """Raised when `pct create` or `pct start` fails."""
    pass


@dataclass
class ProvisionResult:
    """Outcome of a successful create-and-provision run."""
    vmid: int
    name: str
    hostname: str
    ip: Optional[str]


class ContainerOrchestrator:
    """Facade over discovery, allocation, lifecycle and provisioning."""

    def __init__(self, mock: bool = False):
        self.mock = mock
        self.discovery = GuestDiscovery(mock=mock)
        self.allocator = VmidAllocator(self.discovery)
        self.templates = TemplateManager(mock=mock)
        self.lifecycle = ContainerLifecycle(mock=mock)
        self.provisioner = DockerHostProvisioner(self.lifecycle, mock=mock)

    def _lock_file(self) -> Path:
        return Path(get_config().lock_file)

    def next_vmid(self, start: Optional[int] = None) -> int:
        """Next free VMID (informational; not reserved)."""
        start = get_config().start_vmid if start is None else start
        return self.allocator.next_free(start)

    def create(self, spec: ContainerSpec, quick: bool = False) -> ProvisionResult:
        """Create, start and provision a Docker/Portainer container.

        The VMID probe and `pct create` run under the host-wide VMID lock so
        concurrent runs cannot claim the same ID.

        Raises:
            LockError, VmidInUseError, VmidExhaustedError, TemplateNotFoundError,
            ContainerCreateError, ProvisionError
        """
        config = get_config()

        with vmid_lock(lock_file=self._lock_file(), timeout=config.lock_timeout):
            if spec.vmid is not None:
                vmid = self.allocator.check_available(spec.vmid)
            else:
                vmid = self.allocator.next_free(config.start_vmid)
                logger.info(f"Auto-assigned container ID: {vmid}")

            if not self.templates.template_exists(spec.template, spec.storage):
                raise TemplateNotFoundError(
                    spec.template,
                    spec.storage,
                    self.templates.list_local(spec.storage),
                )

            if not self.lifecycle.create_container(spec, vmid):
                raise ContainerCreateError(f"Failed to create container {vmid}")

        if not self.lifecycle.start_container(vmid):
            raise ContainerCreateError(f"Failed to start container {vmid}")

        self.lifecycle.wait_until_ready(vmid, config.boot_wait)
        self.provisioner.provision(vmid, quick=quick)

        ip = self.discovery.get_container_ip(vmid)
        return ProvisionResult(vmid=vmid, name=spec.name, hostname=spec.hostname, ip=ip)
