"""GitHub Actions workflow generation."""
from .generator import (
    BUILD_DEPLOY_WORKFLOW_FILE,
    PORTAINER_WORKFLOW_FILE,
    REQUIRED_SECRETS,
    WorkflowError,
    WorkflowGenerator,
    WorkflowSummary,
)

__all__ = [
    'BUILD_DEPLOY_WORKFLOW_FILE',
    'PORTAINER_WORKFLOW_FILE',
    'REQUIRED_SECRETS',
    'WorkflowError',
    'WorkflowGenerator',
    'WorkflowSummary',
]
