"""Proxmox VE container management.

- GuestDiscovery: query VM/container status and addresses
- TemplateManager: template availability in a storage
- VmidAllocator: next free VMID across VMs and containers
- ContainerLifecycle: create, start, exec

The locked allocate-create-provision flow lives in
`pvekit.services.proxmox.orchestrator`.
"""
from .discovery import GuestDiscovery
from .templates import TemplateManager
from .vmid import VmidAllocator, VmidExhaustedError, VmidInUseError
from .lifecycle import ContainerLifecycle

__all__ = [
    'GuestDiscovery',
    'TemplateManager',
    'VmidAllocator',
    'VmidExhaustedError',
    'VmidInUseError',
    'ContainerLifecycle',
]
