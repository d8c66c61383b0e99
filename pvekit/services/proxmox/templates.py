"""Template availability checks for Proxmox LXC storage."""
import subprocess
from typing import List

from pvekit.core.logger import get_logger

logger = get_logger(__name__)


class TemplateManager:
    """Lists and checks LXC templates with `pveam`."""

    def __init__(self, mock: bool = False):
        self.mock = mock

    def list_local(self, storage: str = 'local') -> List[str]:
        """Return the lines of `pveam list <storage>` (header excluded).

        Returns:
            Template volume lines, e.g. 'local:vztmpl/ubuntu-22.04-standard_22.04-1_amd64.tar.zst  129.82MB'
        """
        if self.mock:
            return [
                f'{storage}:vztmpl/ubuntu-22.04-standard_22.04-1_amd64.tar.zst  129.82MB',
                f'{storage}:vztmpl/debian-12-standard_12.7-1_amd64.tar.zst  120.28MB',
            ]

        try:
            result = subprocess.run(
                ['pveam', 'list', storage],
                capture_output=True,
                text=True,
                check=True
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"Failed to list templates in {storage}: {e}")
            if e.stderr:
                logger.error(f"Error output: {e.stderr}")
            return []

        return [line for line in result.stdout.splitlines()[1:] if line.strip()]

    def template_exists(self, template: str, storage: str = 'local') -> bool:
        """Check if the template is present in the storage."""
        return any(template in line for line in self.list_local(storage))
