"""pvekit runtime configuration and settings."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pvekit.core.logger import get_logger

logger = get_logger(__name__)

# Search order for the optional defaults file (first hit wins)
DEFAULTS_PATHS = [
    "./pvekit.yml",
    str(Path.home() / ".config" / "pvekit" / "pvekit.yml"),
    "/etc/pvekit/pvekit.yml",
]

# Keys accepted in the `container:` section of pvekit.yml
CONTAINER_DEFAULT_KEYS = {
    'template', 'storage', 'memory', 'cores', 'disk', 'bridge',
}


class ConfigError(Exception):
    """Raised when the defaults file is malformed."""
    pass


@dataclass
class PvekitConfig:
    """Runtime configuration for pvekit operations.

    Attributes:
        start_vmid: First VMID probed when auto-assigning (default: 100)
        boot_wait: Seconds to wait after `pct start` before provisioning (default: 10)
        lock_file: Lock serialising VMID allocation and `pct create`
        lock_timeout: Seconds to wait for the VMID lock (default: 30)
        ssh_key_path: Deployment key pair location on the operator machine
        http_timeout: Timeout in seconds for Portainer API requests (default: 30)
        command_timeout: Timeout in seconds for in-container scripts (default: 1800)
    """

    start_vmid: int = 100
    boot_wait: int = 10
    lock_file: str = "/var/run/pvekit/vmid.lock"
    lock_timeout: int = 30
    ssh_key_path: str = "~/.ssh/portainer_deploy"
    http_timeout: int = 30
    command_timeout: int = 1800  # apt upgrades inside a fresh container are slow

    @classmethod
    def from_env(cls) -> "PvekitConfig":
        """Create config from PVEKIT_* environment variables.

        Environment variables:
            PVEKIT_START_VMID, PVEKIT_BOOT_WAIT, PVEKIT_LOCK_FILE,
            PVEKIT_LOCK_TIMEOUT, PVEKIT_SSH_KEY, PVEKIT_HTTP_TIMEOUT,
            PVEKIT_COMMAND_TIMEOUT

        Returns:
            PvekitConfig with values from environment or defaults
        """
        return cls(
            start_vmid=int(os.getenv("PVEKIT_START_VMID", cls.start_vmid)),
            boot_wait=int(os.getenv("PVEKIT_BOOT_WAIT", cls.boot_wait)),
            lock_file=os.getenv("PVEKIT_LOCK_FILE", cls.lock_file),
            lock_timeout=int(os.getenv("PVEKIT_LOCK_TIMEOUT", cls.lock_timeout)),
            ssh_key_path=os.getenv("PVEKIT_SSH_KEY", cls.ssh_key_path),
            http_timeout=int(os.getenv("PVEKIT_HTTP_TIMEOUT", cls.http_timeout)),
            command_timeout=int(os.getenv("PVEKIT_COMMAND_TIMEOUT", cls.command_timeout)),
        )

    @property
    def ssh_key(self) -> Path:
        """Expanded deployment key path."""
        return Path(self.ssh_key_path).expanduser()


_config: Optional[PvekitConfig] = None


def get_config() -> PvekitConfig:
    """Get the global pvekit configuration (created from environment on first use)."""
    global _config
    if _config is None:
        _config = PvekitConfig.from_env()
    return _config


def set_config(config: Optional[PvekitConfig]):
    """Set (or with None, reset) the global pvekit configuration."""
    global _config
    _config = config


def find_defaults_file(path: Optional[str] = None) -> Optional[Path]:
    """Locate the defaults file: explicit path, PVEKIT_DEFAULTS, then search paths."""
    if path:
        return Path(path)

    if env_path := os.environ.get("PVEKIT_DEFAULTS"):
        return Path(env_path)

    for candidate in DEFAULTS_PATHS:
        if Path(candidate).exists():
            return Path(candidate)

    return None


def load_defaults(path: Optional[str] = None) -> Dict[str, Any]:
    """Load container defaults from pvekit.yml.

    Example file:
        container:
          storage: local-lvm
          memory: 4096

    Args:
        path: Explicit defaults file (optional)

    Returns:
        Dict of ContainerSpec field overrides, empty when no file exists

    Raises:
        ConfigError: File is not a mapping or names unknown keys
    """
    defaults_file = find_defaults_file(path)
    if defaults_file is None or not defaults_file.exists():
        return {}

    try:
        with open(defaults_file) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {defaults_file}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{defaults_file} must contain a mapping")

    container = raw.get('container') or {}
    if not isinstance(container, dict):
        raise ConfigError(f"'container' in {defaults_file} must be a mapping")

    unknown = set(container) - CONTAINER_DEFAULT_KEYS
    if unknown:
        raise ConfigError(
            f"Unknown container defaults in {defaults_file}: {', '.join(sorted(unknown))}"
        )

    logger.debug(f"Loaded container defaults from {defaults_file}")
    return dict(container)
