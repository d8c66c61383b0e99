"""Docker container deployment target for the Portainer API."""
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeploymentTarget(BaseModel):
    """One container to (re)create on a Portainer endpoint."""

    model_config = ConfigDict(extra='forbid')

    name: str = Field(..., description="Container name, e.g. budget-api-staging")
    image: str = Field(..., description="Image without tag, e.g. user/budget-api")
    tag: str = "latest"
    host_port: int = Field(..., gt=0, lt=65536)
    container_port: int = Field(80, gt=0, lt=65536)
    env: List[str] = Field(default_factory=list, description="KEY=VALUE entries")
    network: Optional[str] = None
    restart_policy: str = "unless-stopped"

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not re.match(r'^[a-zA-Z0-9][a-zA-Z0-9_.-]*$', v):
            raise ValueError(f"Invalid container name: {v}")
        return v

    @field_validator('env')
    @classmethod
    def validate_env(cls, v):
        for item in v:
            if '=' not in item:
                raise ValueError(f"Environment entries must be KEY=VALUE. Got: {item}")
        return v

    @property
    def image_ref(self) -> str:
        return f"{self.image}:{self.tag}"

    def to_create_body(self) -> Dict[str, Any]:
        """Docker Engine `containers/create` request body."""
        port_key = f"{self.container_port}/tcp"
        body: Dict[str, Any] = {
            "Image": self.image_ref,
            "Env": list(self.env),
            "ExposedPorts": {port_key: {}},
            "HostConfig": {
                "PortBindings": {port_key: [{"HostPort": str(self.host_port)}]},
                "RestartPolicy": {"Name": self.restart_policy},
            },
        }
        if self.network:
            body["NetworkingConfig"] = {"EndpointsConfig": {self.network: {}}}
        return body
