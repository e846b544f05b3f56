"""
Project registry for resolving the sibling projects of an organization.

The registry lives outside every project (``~/.tally/projects.json`` by
default). Projects are keyed by their resolved absolute path. Writes go
through a temp file and rename, serialized by a lock per registry instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, TypeVar, runtime_checkable

from pydantic import ValidationError

from tally.core.config.models import TallyConfig
from tally.core.errors import TallyError
from tally.core.projects.models import (
    Organization,
    ProjectInfo,
    ProjectRegistryFile,
    TrackedProject,
)
from tally.utils.project import is_initialized, now_iso

logger = logging.getLogger(__name__)

REGISTRY_FILE = "projects.json"

T = TypeVar("T")


class ProjectRegistryError(TallyError):
    """Exception raised when the project registry cannot be read or updated."""


@runtime_checkable
class SiblingResolver(Protocol):
    """
    Protocol for anything that can list the sibling projects of an organization.

    Sync only needs this one query, so tests and alternative registries can
    stand in for ProjectRegistry.
    """

    async def list_sibling_projects(self, org_slug: str, exclude_path: str) -> list[ProjectInfo]:
        """
        List initialized, non-archived projects of an organization.

        Args:
            org_slug: Organization slug
            exclude_path: Project path to leave out (the source project)

        Returns:
            Sibling projects in a stable order
        """
        ...


def normalize_path(path: Path | str) -> str:
    """Key used for a project in the registry."""
    return str(Path(path).expanduser().resolve())


class ProjectRegistry:
    """
    JSON-backed registry of projects and organizations.

    Example:
        registry = ProjectRegistry(Path("~/.tally/projects.json").expanduser())
        await registry.create_organization("acme", "Acme Inc")
        await registry.track_project(Path("/work/api"), organization_slug="acme")
        siblings = await registry.list_sibling_projects("acme", exclude_path="/work/web")
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: TallyConfig) -> ProjectRegistry:
        return cls(config.home_path / REGISTRY_FILE)

    def _load(self) -> ProjectRegistryFile:
        if not self.path.exists():
            return ProjectRegistryFile()

        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ProjectRegistryError(f"Failed to read {self.path}: {e}") from e

        try:
            return ProjectRegistryFile.model_validate_json(content)
        except ValidationError as e:
            raise ProjectRegistryError(f"Corrupt project registry {self.path}: {e}") from e

    def _save(self, registry: ProjectRegistryFile) -> None:
        registry.updated_at = now_iso()
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(registry.to_json(), encoding="utf-8")
            temp_path.replace(self.path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ProjectRegistryError(f"Failed to write {self.path}: {e}") from e

    async def _read(self) -> ProjectRegistryFile:
        async with self._lock:
            return await asyncio.to_thread(self._load)

    async def _modify(self, change: Callable[[ProjectRegistryFile], T]) -> T:
        """Load, apply ``change`` and save, all under the lock."""
        async with self._lock:
            registry = await asyncio.to_thread(self._load)
            result = change(registry)
            await asyncio.to_thread(self._save, registry)
            return result

    async def list_sibling_projects(self, org_slug: str, exclude_path: str) -> list[ProjectInfo]:
        """
        List initialized, non-archived projects of an organization.

        Raises:
            ProjectRegistryError: If the registry file is unreadable or corrupt
        """
        registry = await self._read()
        excluded = normalize_path(exclude_path)

        siblings = []
        for path, entry in sorted(registry.projects.items()):
            if entry.organization_slug != org_slug or entry.is_archived or path == excluded:
                continue
            initialized = await asyncio.to_thread(is_initialized, Path(path))
            if not initialized:
                logger.debug("Skipping uninitialized sibling %s", path)
                continue
            siblings.append(
                ProjectInfo(
                    path=path,
                    initialized=True,
                    organization_slug=org_slug,
                    name=Path(path).name,
                )
            )
        return siblings

    async def get_project_organization(self, path: Path | str) -> str | None:
        """Return the organization slug of a tracked project, if any."""
        registry = await self._read()
        entry = registry.projects.get(normalize_path(path))
        return entry.organization_slug if entry else None

    async def get_organization(self, slug: str) -> Organization | None:
        registry = await self._read()
        return registry.organizations.get(slug)

    async def list_projects(self) -> dict[str, TrackedProject]:
        registry = await self._read()
        return dict(registry.projects)

    async def create_organization(self, slug: str, name: str) -> Organization:
        """
        Create (or rename) an organization.

        Raises:
            ProjectRegistryError: If the slug is empty or the registry is unusable
        """
        if not slug:
            raise ProjectRegistryError("Organization slug is required")

        def change(registry: ProjectRegistryFile) -> Organization:
            existing = registry.organizations.get(slug)
            if existing:
                org = Organization(name=name, created_at=existing.created_at)
            else:
                org = Organization(name=name)
            registry.organizations[slug] = org
            return org

        org = await self._modify(change)
        logger.info("Registered organization %s", slug)
        return org

    async def track_project(
        self, path: Path | str, organization_slug: str | None = None
    ) -> TrackedProject:
        """
        Record that a project was accessed, optionally assigning its organization.

        An existing organization assignment is kept when ``organization_slug``
        is None.

        Raises:
            ProjectRegistryError: If the organization is unknown
        """
        key = normalize_path(path)

        def change(registry: ProjectRegistryFile) -> TrackedProject:
            if organization_slug is not None and organization_slug not in registry.organizations:
                raise ProjectRegistryError(f"Unknown organization: {organization_slug}")

            entry = registry.projects.get(key) or TrackedProject()
            entry.last_accessed = now_iso()
            if organization_slug is not None:
                entry.organization_slug = organization_slug
            registry.projects[key] = entry
            return entry

        entry = await self._modify(change)
        logger.debug("Tracked project %s (org=%s)", key, entry.organization_slug)
        return entry

    async def set_archived(self, path: Path | str, archived: bool = True) -> None:
        """
        Archive or unarchive a tracked project; archived projects receive no sync.

        Raises:
            ProjectRegistryError: If the project is not tracked
        """
        key = normalize_path(path)

        def change(registry: ProjectRegistryFile) -> None:
            entry = registry.projects.get(key)
            if entry is None:
                raise ProjectRegistryError(f"Project not tracked: {key}")
            entry.is_archived = archived

        await self._modify(change)
