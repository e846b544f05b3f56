"""
Item service: the create, update and read flows of a project.

Creating an item runs, in order:
1. Reconcile the project's display numbers
2. Compute the next local display number
3. For org items, allocate the org display number from the org registry
4. Write the item file
5. For org items, propagate the item to sibling projects

Steps 1-4 fail the call on error. Step 5 never does; its per-sibling
outcomes are returned alongside the item.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, Field

from tally.core.config.models import TallyConfig
from tally.core.errors import (
    DisplayNumberNotFoundError,
    ItemValidationError,
    NoOrganizationError,
    ProjectNotInitializedError,
)
from tally.core.ids.allocator import next_display_number
from tally.core.ids.counters import OrgCounterRegistry
from tally.core.ids.reconcile import reconcile_display_numbers
from tally.core.items.models import Item
from tally.core.items.store import ItemStore
from tally.core.projects.registry import ProjectRegistry
from tally.core.sync.models import SyncResult
from tally.core.sync.service import OrgSyncService
from tally.utils.project import get_items_path, is_initialized, now_iso

logger = logging.getLogger(__name__)


class CreateItemOptions(BaseModel):
    """Input for creating an item; unset status/priority use config defaults."""

    title: str
    body: str = ""
    status: str | None = None
    priority: int | None = None
    custom_fields: dict[str, str] = Field(default_factory=dict)
    draft: bool = False
    is_org_item: bool = False


class UpdateItemOptions(BaseModel):
    """Input for updating an item; None leaves a field unchanged."""

    title: str | None = None
    body: str | None = None
    status: str | None = None
    priority: int | None = None
    custom_fields: dict[str, str] | None = None
    draft: bool | None = None


@dataclass
class CreateItemResult:
    item: Item
    sync_results: list[SyncResult] = field(default_factory=list)


@dataclass
class UpdateItemResult:
    item: Item
    sync_results: list[SyncResult] = field(default_factory=list)


class ItemService:
    """
    Entry point for item operations within one project.

    The org counter registry and project registry are shared by every
    service in the process and passed in.

    Example:
        >>> service = ItemService(Path("/work/api"), counters, projects, load_config())
        >>> result = await service.create_item(CreateItemOptions(title="Fix login"))
        >>> result.item.display_number
        1
    """

    def __init__(
        self,
        project_path: Path,
        counters: OrgCounterRegistry,
        projects: ProjectRegistry,
        config: TallyConfig,
    ):
        self.project_path = Path(project_path)
        self.counters = counters
        self.projects = projects
        self.config = config
        self.store = ItemStore.for_project(self.project_path)
        self.sync = OrgSyncService(projects, parallel=config.sync.parallel)

    async def init_project(self) -> Path:
        """Create the items directory and register the project."""
        items_path = get_items_path(self.project_path)
        await asyncio.to_thread(items_path.mkdir, parents=True, exist_ok=True)
        await self.projects.track_project(self.project_path)
        logger.info("Initialized tally in %s", self.project_path)
        return items_path

    def _require_initialized(self) -> None:
        if not is_initialized(self.project_path):
            raise ProjectNotInitializedError(self.project_path)

    def _validate_title(self, title: str) -> str:
        title = title.strip()
        if not title:
            raise ItemValidationError("Title is required")
        return title

    def _validate_status(self, status: str) -> str:
        allowed = self.config.items.allowed_statuses
        if status not in allowed:
            raise ItemValidationError(
                f"Invalid status '{status}'. Allowed: {', '.join(allowed)}"
            )
        return status

    def _validate_priority(self, priority: int) -> int:
        levels = self.config.items.priority_levels
        if not 1 <= priority <= levels:
            raise ItemValidationError(f"Priority must be between 1 and {levels}, got {priority}")
        return priority

    async def create_item(self, options: CreateItemOptions) -> CreateItemResult:
        """
        Create an item, numbering it and propagating org items.

        Raises:
            ProjectNotInitializedError: If the project has no .tally directory
            ItemValidationError: If title, status or priority is invalid
            NoOrganizationError: If an org item is requested outside an organization
            CounterAllocationError: If the org number cannot be allocated
        """
        self._require_initialized()
        title = self._validate_title(options.title)
        status = self._validate_status(options.status or self.config.items.default_status)
        priority = self._validate_priority(
            options.priority if options.priority is not None
            else self.config.items.default_priority
        )

        org_slug = None
        if options.is_org_item:
            org_slug = await self.projects.get_project_organization(self.project_path)
            if org_slug is None:
                raise NoOrganizationError(self.project_path)

        await reconcile_display_numbers(self.store)
        display_number = await next_display_number(self.store)
        org_display_number = await self.counters.allocate(org_slug) if org_slug else None

        now = now_iso()
        item = Item(
            id=str(uuid.uuid4()),
            title=title,
            body=options.body,
            display_number=display_number,
            org_display_number=org_display_number,
            status=status,
            priority=priority,
            custom_fields=options.custom_fields,
            created_at=now,
            updated_at=now,
            draft=options.draft,
            is_org_item=org_slug is not None,
            org_slug=org_slug,
        )
        await asyncio.to_thread(self.store.write_item, item)
        logger.info("Created item %s as #%d in %s", item.id, display_number, self.project_path)

        sync_results = []
        if item.is_org_item:
            sync_results = await self.sync.propagate_create(item, self.project_path)
        return CreateItemResult(item=item, sync_results=sync_results)

    async def update_item(self, item_id: str, options: UpdateItemOptions) -> UpdateItemResult:
        """
        Update mutable fields of an item; display number and creation time stay.

        Raises:
            ProjectNotInitializedError: If the project has no .tally directory
            ItemNotFoundError: If the item doesn't exist
            ItemValidationError: If a new title, status or priority is invalid
        """
        self._require_initialized()
        item = await asyncio.to_thread(self.store.load, item_id)

        changes = options.model_dump(exclude_none=True)
        if "title" in changes:
            changes["title"] = self._validate_title(changes["title"])
        if "status" in changes:
            self._validate_status(changes["status"])
        if "priority" in changes:
            self._validate_priority(changes["priority"])
        changes["updated_at"] = now_iso()

        updated = item.model_copy(update=changes)
        return await self._save_and_propagate(updated)

    async def delete_item(self, item_id: str) -> UpdateItemResult:
        """
        Soft-delete an item by stamping ``deleted_at``.

        The item keeps its display number, so the number is never reused.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        self._require_initialized()
        item = await asyncio.to_thread(self.store.load, item_id)
        if item.is_deleted:
            return UpdateItemResult(item=item)

        now = now_iso()
        deleted = item.model_copy(update={"deleted_at": now, "updated_at": now})
        return await self._save_and_propagate(deleted)

    async def _save_and_propagate(self, item: Item) -> UpdateItemResult:
        await asyncio.to_thread(self.store.write_item, item)
        logger.info("Updated item %s in %s", item.id, self.project_path)

        sync_results = []
        if item.is_org_item:
            sync_results = await self.sync.propagate_update(item, self.project_path)
        return UpdateItemResult(item=item, sync_results=sync_results)

    async def get_item(self, item_id: str) -> Item:
        """
        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        self._require_initialized()
        return await asyncio.to_thread(self.store.load, item_id)

    async def get_item_by_display_number(self, display_number: int) -> Item:
        """
        Find an item by display number, deleted items included.

        Display numbers are reconciled first so the lookup is unambiguous.

        Raises:
            DisplayNumberNotFoundError: If no item carries the number
        """
        self._require_initialized()
        await reconcile_display_numbers(self.store)
        report = await asyncio.to_thread(self.store.scan)
        for item in report.items:
            if item.display_number == display_number:
                return item
        raise DisplayNumberNotFoundError(display_number)

    async def list_items(self, include_deleted: bool = False) -> list[Item]:
        """List items sorted by display number, reconciling first."""
        self._require_initialized()
        await reconcile_display_numbers(self.store)
        report = await asyncio.to_thread(self.store.scan)
        items = [i for i in report.items if include_deleted or not i.is_deleted]
        return sorted(items, key=lambda i: (i.display_number, i.id))
