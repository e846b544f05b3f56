"""
Project registry data models.

The registry is a JSON document in the tally home directory that records
every project tally has seen and the organization it belongs to:

    {
      "schemaVersion": 1,
      "updatedAt": "2026-01-16T14:32:00.000000Z",
      "organizations": {"acme": {"name": "Acme Inc", "createdAt": "..."}},
      "projects": {
        "/work/api": {
          "organizationSlug": "acme",
          "isArchived": false,
          "firstAccessed": "...",
          "lastAccessed": "..."
        }
      }
    }
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tally.utils.project import now_iso

REGISTRY_SCHEMA_VERSION = 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Organization(_CamelModel):
    """An organization that groups sibling projects."""

    name: str = Field(..., min_length=1)
    created_at: str = Field(default_factory=now_iso)


class TrackedProject(_CamelModel):
    """Registry entry for a single project, keyed by its absolute path."""

    organization_slug: str | None = None
    is_archived: bool = False
    first_accessed: str = Field(default_factory=now_iso)
    last_accessed: str = Field(default_factory=now_iso)


class ProjectRegistryFile(_CamelModel):
    """Root document of projects.json."""

    schema_version: int = Field(default=REGISTRY_SCHEMA_VERSION, ge=1)
    updated_at: str = Field(default_factory=now_iso)
    organizations: dict[str, Organization] = Field(default_factory=dict)
    projects: dict[str, TrackedProject] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class ProjectInfo(BaseModel):
    """
    A project as seen by sync: where it is and whether it can take items.

    ``initialized`` is computed when the registry is queried, not stored.
    """

    path: str
    initialized: bool
    organization_slug: str | None = None
    name: str | None = None
