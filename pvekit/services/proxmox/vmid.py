"""VMID allocation."""
from pvekit.core.logger import get_logger
from pvekit.models.container import MAX_VMID, MIN_VMID
from .discovery import GuestDiscovery

logger = get_logger(__name__)


class VmidInUseError(Exception):
    """Raised when an explicitly requested VMID is taken."""
    pass


class VmidExhaustedError(Exception):
    """Raised when no VMID is left above the start value."""
    pass


class VmidAllocator:
    """Finds free VMIDs by linear probing.

    Probing alone is racy between processes; callers that go on to create
    the guest must hold `pvekit.core.lock.vmid_lock` across both steps.
    """

    def __init__(self, discovery: GuestDiscovery = None, mock: bool = False):
        self.discovery = discovery or GuestDiscovery(mock=mock)

    def next_free(self, start: int = MIN_VMID) -> int:
        """Return the lowest VMID >= start not used by any VM or container."""
        vmid = max(start, MIN_VMID)
        logger.debug(f"Checking for available VMID starting from {vmid}")

        while self.discovery.vmid_in_use(vmid):
            logger.debug(f"VMID {vmid} already exists, checking next")
            vmid += 1
            if vmid > MAX_VMID:
                raise VmidExhaustedError(f"No free VMIDs available from {start}")

        logger.debug(f"Found available VMID: {vmid}")
        return vmid

    def check_available(self, vmid: int) -> int:
        """Validate an explicitly requested VMID.

        Raises:
            VmidInUseError: A VM or container already uses it
        """
        if self.discovery.vmid_in_use(vmid):
            raise VmidInUseError(f"Container ID {vmid} is already in use")
        return vmid
