"""Portainer REST API client for redeploying containers.

Performs the same call sequence the generated GitHub workflows run with
curl: authenticate, pull, stop/remove the old container, create, start.
"""
from typing import Any, Dict, Optional

import requests

from pvekit.core.config import get_config
from pvekit.core.logger import get_logger
from pvekit.core.retry import retry
from pvekit.models.deployment import DeploymentTarget

logger = get_logger(__name__)

# Docker answers 304 for "already stopped" and 404 for "no such container"
TOLERATED_STATUS = {304, 404}


class PortainerError(Exception):
    """Raised when the Portainer API rejects a request."""
    pass


class PortainerClient:
    """Minimal client for one Portainer Docker endpoint."""

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        endpoint_id: int = 1,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ):
        self.url = url.rstrip('/')
        self.username = username
        self.password = password
        self.endpoint_id = endpoint_id
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else get_config().http_timeout
        self._jwt: Optional[str] = None

    @property
    def docker_base(self) -> str:
        return f"{self.url}/api/endpoints/{self.endpoint_id}/docker"

    def _headers(self) -> Dict[str, str]:
        if self._jwt is None:
            self.authenticate()
        return {"Authorization": f"Bearer {self._jwt}"}

    def _request(self, method: str, url: str, tolerate: set = frozenset(), **kwargs) -> requests.Response:
        response = self.session.request(
            method, url, headers=self._headers(), timeout=self.timeout, **kwargs
        )
        if response.status_code >= 400 and response.status_code not in tolerate:
            raise PortainerError(
                f"{method} {url} failed with HTTP {response.status_code}: {response.text}"
            )
        return response

    @retry(max_attempts=3, delay=2, exceptions=(requests.ConnectionError, requests.Timeout))
    def authenticate(self) -> str:
        """Exchange username/password for a JWT.

        Raises:
            PortainerError: Credentials rejected or no token in the response
        """
        response = self.session.post(
            f"{self.url}/api/auth",
            json={"username": self.username, "password": self.password},
            timeout=self.timeout,
        )
        try:
            jwt = response.json().get('jwt')
        except ValueError:
            jwt = None

        if response.status_code >= 400 or not jwt:
            raise PortainerError("Failed to authenticate with Portainer")

        self._jwt = jwt
        logger.debug(f"Authenticated with Portainer at {self.url}")
        return jwt

    @retry(max_attempts=3, delay=2, exceptions=(requests.ConnectionError, requests.Timeout))
    def pull_image(self, image: str, tag: str = "latest") -> None:
        logger.info(f"Pulling {image}:{tag}")
        self._request(
            'POST',
            f"{self.docker_base}/images/create",
            params={"fromImage": image, "tag": tag},
        )

    def find_container(self, name: str) -> Optional[str]:
        """Return the ID of the container named `name`, if any."""
        response = self._request(
            'GET', f"{self.docker_base}/containers/json", params={"all": "true"}
        )
        for container in response.json():
            if f"/{name}" in (container.get('Names') or []):
                return container.get('Id')
        return None

    def stop_container(self, container: str) -> None:
        self._request('POST', f"{self.docker_base}/containers/{container}/stop", tolerate=TOLERATED_STATUS)

    def remove_container(self, container: str, force: bool = True) -> None:
        self._request(
            'DELETE',
            f"{self.docker_base}/containers/{container}",
            params={"force": str(force).lower()},
            tolerate=TOLERATED_STATUS,
        )

    def create_container(self, name: str, body: Dict[str, Any]) -> str:
        """Create a container and return its ID."""
        response = self._request(
            'POST',
            f"{self.docker_base}/containers/create",
            params={"name": name},
            json=body,
        )
        container_id = response.json().get('Id')
        if not container_id:
            raise PortainerError(f"Failed to create container {name}: {response.text}")
        return container_id

    def start_container(self, container: str) -> None:
        self._request('POST', f"{self.docker_base}/containers/{container}/start")

    def redeploy(self, target: DeploymentTarget) -> str:
        """Replace the container described by target with a fresh one.

        Returns:
            ID of the new container
        """
        self.pull_image(target.image, target.tag)

        existing = self.find_container(target.name)
        if existing:
            logger.info(f"Stopping existing container {target.name} ({existing[:12]})")
            self.stop_container(existing)
            self.remove_container(existing, force=True)

        container_id = self.create_container(target.name, target.to_create_body())
        self.start_container(container_id)
        logger.info(f"✓ Deployed {target.image_ref} as {target.name}")
        return container_id
