"""Guest (VM and container) discovery via `pct` and `qm`."""
import re
import subprocess
from typing import Optional

from pvekit.core.logger import get_logger

logger = get_logger(__name__)

# Mock inventory: vmid -> (kind, status)
MOCK_GUESTS = {
    100: ('ct', 'running'),
    101: ('ct', 'stopped'),
    102: ('vm', 'running'),
}
MOCK_IP = "192.168.1.50"


class GuestDiscovery:
    """Answers questions about Proxmox guests on the local node."""

    def __init__(self, mock: bool = False):
        self.mock = mock

    def _status_ok(self, tool: str, vmid: int) -> bool:
        """True when `<tool> status <vmid>` exits 0."""
        try:
            subprocess.run(
                [tool, 'status', str(vmid)],
                capture_output=True,
                text=True,
                check=True
            )
            return True
        except subprocess.CalledProcessError:
            return False

    def vm_exists(self, vmid: int) -> bool:
        if self.mock:
            return MOCK_GUESTS.get(vmid, (None,))[0] == 'vm'
        return self._status_ok('qm', vmid)

    def container_exists(self, vmid: int) -> bool:
        if self.mock:
            return MOCK_GUESTS.get(vmid, (None,))[0] == 'ct'
        return self._status_ok('pct', vmid)

    def vmid_in_use(self, vmid: int) -> bool:
        """Check both namespaces; VMs and containers share one ID space."""
        return self.vm_exists(vmid) or self.container_exists(vmid)

    def container_status(self, vmid: int) -> Optional[str]:
        """Return the container status word (running, stopped, ...).

        Returns:
            Status string, or None if the container does not exist
        """
        if self.mock:
            kind, status = MOCK_GUESTS.get(vmid, (None, None))
            return status if kind == 'ct' else None

        try:
            result = subprocess.run(
                ['pct', 'status', str(vmid)],
                capture_output=True,
                text=True,
                check=True
            )
        except subprocess.CalledProcessError:
            return None

        match = re.search(r'status:\s*([a-z]+)', result.stdout)
        return match.group(1) if match else 'unknown'

    def is_running(self, vmid: int) -> bool:
        return self.container_status(vmid) == 'running'

    def get_container_ip(self, vmid: int) -> Optional[str]:
        """First address reported by `hostname -I` inside the container."""
        if self.mock:
            return MOCK_IP

        try:
            result = subprocess.run(
                ['pct', 'exec', str(vmid), '--', 'hostname', '-I'],
                capture_output=True,
                text=True,
                check=True
            )
        except subprocess.CalledProcessError as e:
            logger.warning(f"Could not read IP address of container {vmid}: {e}")
            return None

        addresses = result.stdout.split()
        return addresses[0] if addresses else None
