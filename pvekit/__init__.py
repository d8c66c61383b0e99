"""pvekit - Proxmox LXC, Portainer and CI scaffolding helpers."""

__version__ = "0.3.0"
