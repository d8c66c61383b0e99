"""Host-wide lock around VMID allocation.

Two `pvekit lxc create` runs on the same node would otherwise probe the
same free VMID. The lock is held from the probe until `pct create` returns.
"""
import fcntl
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from pvekit.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LOCK_FILE = Path("/var/run/pvekit/vmid.lock")
POLL_INTERVAL = 0.5


class LockError(Exception):
    """Raised when the VMID lock cannot be acquired."""
    pass


@dataclass
class LockHolder:
    """Process recorded in the lock file."""
    pid: str
    since: str
    lock_file: Path

    @classmethod
    def parse(cls, text: str, lock_file: Path) -> "LockHolder":
        lines = [line.strip() for line in text.splitlines()]
        if len(lines) < 2:
            return cls('unknown', 'unknown', lock_file)
        return cls(lines[0], lines[1], lock_file)


def _try_flock(handle: TextIO) -> bool:
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        return False
    return True


class VmidLock:
    """Exclusive flock on the VMID lock file.

    Args:
        lock_file: Lock path (default /var/run/pvekit/vmid.lock)
        timeout: Seconds to keep polling; 0 fails on first contention
    """

    def __init__(self, lock_file: Optional[Path] = None, timeout: int = 0):
        self.lock_file = Path(lock_file) if lock_file else DEFAULT_LOCK_FILE
        self.timeout = timeout
        self._handle: Optional[TextIO] = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def holder(self) -> LockHolder:
        try:
            return LockHolder.parse(self.lock_file.read_text(), self.lock_file)
        except OSError:
            return LockHolder('unknown', 'unknown', self.lock_file)

    def acquire(self) -> bool:
        """Take the lock, polling until the timeout runs out.

        Raises:
            LockError: Another process keeps the lock
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        # a+ leaves the current holder's PID intact while we wait
        handle = open(self.lock_file, 'a+')
        deadline = time.monotonic() + self.timeout

        while not _try_flock(handle):
            if time.monotonic() >= deadline:
                holder = self.holder()
                handle.close()
                raise LockError(self._contention_message(holder))
            time.sleep(POLL_INTERVAL)

        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n{time.strftime('%Y-%m-%d %H:%M:%S')}\n")
        handle.flush()
        self._handle = handle
        logger.debug(f"Acquired VMID lock {self.lock_file}")
        return True

    def _contention_message(self, holder: LockHolder) -> str:
        if self.timeout:
            return (
                f"Timeout waiting for lock after {self.timeout}s.\n"
                f"Lock held by PID {holder.pid} since {holder.since}"
            )
        return (
            f"Another container is being created on this host.\n"
            f"Lock held by PID {holder.pid} since {holder.since}"
        )

    def release(self):
        """Clear the holder record and unlock.

        The file is never unlinked; waiters hold descriptors to its inode.
        """
        if not self.held:
            return

        handle, self._handle = self._handle, None
        try:
            handle.seek(0)
            handle.truncate()
            handle.flush()
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            logger.warning(f"Error releasing VMID lock: {e}")
        finally:
            handle.close()
        logger.debug(f"Released VMID lock {self.lock_file}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


@contextmanager
def vmid_lock(lock_file: Optional[Path] = None, timeout: int = 0):
    """Hold the VMID lock for the duration of the block.

    Usage:
        with vmid_lock(timeout=30):
            vmid = allocator.next_free()
            lifecycle.create_container(spec, vmid)
    """
    lock = VmidLock(lock_file=lock_file, timeout=timeout)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()


def check_lock_status(lock_file: Optional[Path] = None) -> Optional[LockHolder]:
    """Return the current holder, or None when the lock is free or stale."""
    lock_path = Path(lock_file) if lock_file else DEFAULT_LOCK_FILE
    if not lock_path.exists():
        return None

    try:
        with open(lock_path) as handle:
            if _try_flock(handle):
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
                return None
            return LockHolder.parse(handle.read(), lock_path)
    except OSError as e:
        logger.warning(f"Error checking VMID lock: {e}")
        return None
