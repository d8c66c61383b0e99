"""Data models for pvekit."""
from pvekit.models.container import ContainerSpec
from pvekit.models.deployment import DeploymentTarget
from pvekit.models.project import DeploymentType, ProjectName

__all__ = [
    'ContainerSpec',
    'DeploymentTarget',
    'DeploymentType',
    'ProjectName',
]
