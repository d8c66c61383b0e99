"""LXC container specification."""
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TEMPLATE = "ubuntu-22.04-standard_22.04-1_amd64.tar.zst"

# Proxmox VMID range
MIN_VMID = 100
MAX_VMID = 999999999


class ContainerSpec(BaseModel):
    """Everything `pct create` needs for a Docker/Portainer host."""

    model_config = ConfigDict(extra='forbid')

    name: str = Field(..., description="Container name")
    environment: Optional[str] = Field(None, description="Environment (staging/production), used in hostname")
    project: Optional[str] = Field(None, description="Project name, used in hostname")
    vmid: Optional[int] = Field(None, ge=MIN_VMID, le=MAX_VMID, description="Explicit VMID, auto-assigned when unset")
    template: str = DEFAULT_TEMPLATE
    storage: str = "local"
    memory: int = Field(2048, gt=0, description="Memory in MB")
    cores: int = Field(2, gt=0)
    disk: str = "8G"
    bridge: str = "vmbr0"

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Container name cannot be empty."""
        v = v.strip()
        if not v:
            raise ValueError("Container name cannot be empty")
        return v

    @field_validator('environment', 'project')
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @field_validator('disk')
    @classmethod
    def validate_disk(cls, v):
        """Validate disk size format (e.g. 8G, 512M)."""
        if not re.match(r'^\d+[KMGT]$', v):
            raise ValueError(
                f"Disk size must be a number followed by K, M, G or T. Got: {v}"
            )
        return v

    @property
    def hostname(self) -> str:
        """project-environment, else project, else the container name."""
        if self.project and self.environment:
            return f"{self.project}-{self.environment}"
        if self.project:
            return self.project
        return self.name

    @property
    def net0(self) -> str:
        return f"name=eth0,bridge={self.bridge},ip=dhcp"

    @property
    def ostemplate(self) -> str:
        return f"{self.storage}:vztmpl/{self.template}"

    @property
    def rootfs(self) -> str:
        return f"{self.storage}:{self.disk}"
