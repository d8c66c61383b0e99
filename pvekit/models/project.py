"""Project naming used by the workflow generators and scaffolding."""
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class DeploymentType(str, Enum):
    """Shape of the generated Portainer workflow."""

    API_ONLY = "api-only"
    WEBAPP = "webapp"


def slugify(name: str) -> str:
    """Lower-case, non-alphanumerics to '-', collapse runs, trim the ends."""
    slug = re.sub(r'[^a-z0-9]', '-', name.lower())
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-')


class ProjectName(BaseModel):
    """A user supplied project/solution name and its derived spellings.

    Example:
        >>> p = ProjectName(raw="My Budget")
        >>> p.slug, p.title, p.upper
        ('my-budget', 'My-budget', 'MY BUDGET')
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    raw: str

    @field_validator('raw')
    @classmethod
    def validate_raw(cls, v):
        v = v.strip()
        if not slugify(v):
            raise ValueError("Project name cannot be empty")
        return v

    @property
    def slug(self) -> str:
        return slugify(self.raw)

    @property
    def title(self) -> str:
        """Slug with its first character upper-cased (`budget` -> `Budget`)."""
        slug = self.slug
        return slug[:1].upper() + slug[1:]

    @property
    def upper(self) -> str:
        """Raw name upper-cased, used for .NET project directories."""
        return self.raw.upper()
