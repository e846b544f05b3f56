"""
Organization sync service.

Replicates organization items to every sibling project of the same
organization. Two operations are exposed:

- ``propagate_create``: write a new copy of an item into each sibling that
  does not already hold it. The sibling picks its own display number.
- ``propagate_update``: overwrite the sibling copy while keeping its
  display number and creation time, or create it when missing.

Each sibling is handled in isolation. A failure in one sibling is reported
in its SyncResult and never affects the others or the source project.
Writes made here never propagate further.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from tally.core.errors import ItemNotFoundError, MalformedItemError, SyncFailedError
from tally.core.ids.allocator import next_display_number
from tally.core.items.models import Item
from tally.core.items.store import ItemStore
from tally.core.projects.models import ProjectInfo
from tally.core.projects.registry import SiblingResolver
from tally.core.sync.models import REGISTRY_TARGET, SyncResult
from tally.utils.project import is_initialized, now_iso

logger = logging.getLogger(__name__)

SiblingAction = Callable[[Path], Awaitable[None]]


def _require_initialized(project_path: Path) -> ItemStore:
    if not is_initialized(project_path):
        raise SyncFailedError(f"Target project not initialized: {project_path}")
    return ItemStore.for_project(project_path)


def _sibling_copy(item: Item, display_number: int, created_at: str) -> Item:
    return item.model_copy(
        update={
            "display_number": display_number,
            "is_org_item": True,
            "created_at": created_at,
            "updated_at": now_iso(),
        }
    )


async def create_item_in_project(item: Item, project_path: Path) -> bool:
    """
    Create a copy of an org item in one project unless it is already there.

    Args:
        item: Source item (must carry an org slug)
        project_path: Sibling project root

    Returns:
        True if a copy was written, False if the item already existed

    Raises:
        SyncFailedError: If the project is not initialized
    """
    store = _require_initialized(project_path)
    if await asyncio.to_thread(store.exists, item.id):
        logger.debug("Item %s already present in %s", item.id, project_path)
        return False

    number = await next_display_number(store)
    copy = _sibling_copy(item, number, now_iso()).model_copy(update={"deleted_at": None})
    await asyncio.to_thread(store.write_item, copy)
    logger.info("Created item %s in %s as #%d", item.id, project_path, number)
    return True


async def update_or_create_item_in_project(
    item: Item, project_path: Path, old_id: str | None = None
) -> None:
    """
    Bring the copy of an org item in one project up to date.

    An existing copy keeps its display number and creation time; a legacy
    layout copy is migrated on the way. A missing copy is created. When
    ``old_id`` names an item still present under its previous id, that
    item's creation time is carried over and the old item is removed.

    Raises:
        SyncFailedError: If the project is not initialized
        MalformedItemError: If the existing copy cannot be parsed
    """
    store = _require_initialized(project_path)

    try:
        existing = await asyncio.to_thread(store.load, item.id)
    except ItemNotFoundError:
        existing = None

    if existing is not None:
        updated = _sibling_copy(item, existing.display_number, existing.created_at)
        await asyncio.to_thread(store.write_item, updated)
        logger.info("Updated item %s in %s", item.id, project_path)
        return

    created_at = now_iso()
    renamed_from = None
    if old_id and old_id != item.id and await asyncio.to_thread(store.exists, old_id):
        try:
            previous = await asyncio.to_thread(store.load, old_id)
        except MalformedItemError as e:
            logger.warning("Cannot recover creation time from %s: %s", old_id, e)
        else:
            created_at = previous.created_at
            renamed_from = old_id

    number = await next_display_number(store)
    await asyncio.to_thread(store.write_item, _sibling_copy(item, number, created_at))

    if renamed_from is not None:
        await asyncio.to_thread(store.remove_item, renamed_from)
        logger.info("Renamed item %s -> %s in %s", renamed_from, item.id, project_path)
    else:
        logger.info("Created item %s in %s as #%d", item.id, project_path, number)


class OrgSyncService:
    """
    Fans out org item writes to sibling projects.

    Example:
        >>> service = OrgSyncService(ProjectRegistry.from_config(config))
        >>> results = await service.propagate_create(item, Path("/work/api"))
        >>> [r.success for r in results]
        [True, True]
    """

    def __init__(self, project_registry: SiblingResolver, parallel: bool = True):
        """
        Args:
            project_registry: Resolver for the sibling projects of an organization
            parallel: Propagate to siblings concurrently instead of one by one
        """
        self.project_registry = project_registry
        self.parallel = parallel

    async def propagate_create(self, item: Item, source_project: Path) -> list[SyncResult]:
        """
        Create the item in every sibling project that lacks it.

        Args:
            item: Newly created org item
            source_project: Project the item was created in (skipped)

        Returns:
            One SyncResult per sibling attempted; empty for non-org items
        """

        async def action(target: Path) -> None:
            await create_item_in_project(item, target)

        return await self._fan_out(item, source_project, action)

    async def propagate_update(
        self, item: Item, source_project: Path, old_id: str | None = None
    ) -> list[SyncResult]:
        """
        Update (or create) the item in every sibling project.

        Args:
            item: Updated org item
            source_project: Project the update happened in (skipped)
            old_id: Previous id when the item was renamed

        Returns:
            One SyncResult per sibling attempted; empty for non-org items
        """

        async def action(target: Path) -> None:
            await update_or_create_item_in_project(item, target, old_id)

        return await self._fan_out(item, source_project, action)

    async def _fan_out(
        self, item: Item, source_project: Path, action: SiblingAction
    ) -> list[SyncResult]:
        if not item.org_slug:
            return []

        try:
            siblings = await self.project_registry.list_sibling_projects(
                item.org_slug, str(source_project)
            )
        except Exception as e:
            # Every failure mode of the resolver is reported the same way
            logger.warning("Could not resolve siblings for org %s: %s", item.org_slug, e)
            return [SyncResult.failed(REGISTRY_TARGET, f"Failed to list org projects: {e}")]

        if self.parallel:
            return list(
                await asyncio.gather(*(self._sync_one(p, item, action) for p in siblings))
            )

        results = []
        for project in siblings:
            results.append(await self._sync_one(project, item, action))
        return results

    async def _sync_one(self, project: ProjectInfo, item: Item, action: SiblingAction) -> SyncResult:
        try:
            await action(Path(project.path))
        except Exception as e:
            logger.warning("Sync of item %s to %s failed: %s", item.id, project.path, e)
            return SyncResult.failed(project.path, str(e))
        return SyncResult.ok(project.path)
