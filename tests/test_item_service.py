"""
Tests for the item service.

Tests cover project initialization, the create flow (reconcile, number,
org number, write, sync), updates, soft deletes and lookups.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio

from tally.core.config.models import ItemsConfig, TallyConfig
from tally.core.errors import (
    DisplayNumberNotFoundError,
    ItemNotFoundError,
    ItemValidationError,
    NoOrganizationError,
    ProjectNotInitializedError,
)
from tally.core.ids.counters import OrgCounterRegistry
from tally.core.items.service import CreateItemOptions, ItemService, UpdateItemOptions
from tally.core.items.store import ItemStore
from tally.core.projects.registry import ProjectRegistry, normalize_path


@pytest.fixture
def service(project_dir: Path, counters, projects, config) -> ItemService:
    return ItemService(project_dir, counters, projects, config)


@pytest_asyncio.fixture
async def org_setup(
    projects: ProjectRegistry, counters: OrgCounterRegistry, config: TallyConfig, make_project
) -> tuple[ItemService, Path]:
    """A service for an org project plus one sibling project."""
    await projects.create_organization("acme", "Acme")
    source = make_project("api")
    sibling = make_project("web")
    await projects.track_project(source, organization_slug="acme")
    await projects.track_project(sibling, organization_slug="acme")
    return ItemService(source, counters, projects, config), sibling


class TestInitProject:
    """Tests for init_project."""

    @pytest.mark.asyncio
    async def test_creates_items_dir_and_tracks_project(
        self, tmp_path: Path, counters, projects, config
    ) -> None:
        project = tmp_path / "fresh"
        project.mkdir()
        service = ItemService(project, counters, projects, config)

        items_path = await service.init_project()

        assert items_path == project / ".tally" / "issues"
        assert items_path.is_dir()
        assert normalize_path(project) in await projects.list_projects()

    @pytest.mark.asyncio
    async def test_uninitialized_project_rejected(
        self, tmp_path: Path, counters, projects, config
    ) -> None:
        service = ItemService(tmp_path / "fresh", counters, projects, config)

        with pytest.raises(ProjectNotInitializedError, match="tally init"):
            await service.create_item(CreateItemOptions(title="x"))


class TestCreateItem:
    """Tests for create_item."""

    @pytest.mark.asyncio
    async def test_sequential_numbers_and_defaults(self, service: ItemService) -> None:
        first = await service.create_item(CreateItemOptions(title="First"))
        second = await service.create_item(CreateItemOptions(title="Second", body="Details"))

        assert first.item.display_number == 1
        assert second.item.display_number == 2
        assert first.item.status == "open"
        assert first.item.priority == 2
        assert first.item.created_at == first.item.updated_at
        assert first.sync_results == []
        assert service.store.load(second.item.id).body == "Details"

    @pytest.mark.asyncio
    async def test_title_is_trimmed(self, service: ItemService) -> None:
        result = await service.create_item(CreateItemOptions(title="  Padded  "))

        assert result.item.title == "Padded"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options",
        [
            CreateItemOptions(title="   "),
            CreateItemOptions(title="x", status="blocked"),
            CreateItemOptions(title="x", priority=0),
            CreateItemOptions(title="x", priority=4),
        ],
    )
    async def test_invalid_input(self, service: ItemService, options: CreateItemOptions) -> None:
        with pytest.raises(ItemValidationError):
            await service.create_item(options)

    @pytest.mark.asyncio
    async def test_config_drives_validation(
        self, project_dir: Path, counters, projects, tally_home: Path
    ) -> None:
        config = TallyConfig(
            home_dir=str(tally_home),
            items=ItemsConfig(
                allowed_statuses=["todo", "done"], default_status="todo", priority_levels=5
            ),
        )
        service = ItemService(project_dir, counters, projects, config)

        result = await service.create_item(CreateItemOptions(title="x"))

        assert result.item.status == "todo"
        assert result.item.priority == 3

    @pytest.mark.asyncio
    async def test_reconciles_before_numbering(
        self, service: ItemService, store: ItemStore, make_item
    ) -> None:
        store.write_item(make_item("a", display_number=1, created_at="2026-01-01T00:00:00Z"))
        store.write_item(make_item("b", display_number=1, created_at="2026-01-02T00:00:00Z"))

        result = await service.create_item(CreateItemOptions(title="New"))

        assert store.load("b").display_number == 2
        assert result.item.display_number == 3

    @pytest.mark.asyncio
    async def test_org_item_requires_organization(self, service: ItemService) -> None:
        with pytest.raises(NoOrganizationError):
            await service.create_item(CreateItemOptions(title="x", is_org_item=True))

    @pytest.mark.asyncio
    async def test_org_item_numbered_and_synced(self, org_setup) -> None:
        service, sibling = org_setup

        first = await service.create_item(CreateItemOptions(title="Org one", is_org_item=True))
        second = await service.create_item(CreateItemOptions(title="Org two", is_org_item=True))

        assert first.item.org_display_number == 1
        assert second.item.org_display_number == 2
        assert first.item.org_slug == "acme"
        assert [r.target_project_path for r in first.sync_results] == [str(sibling)]
        assert all(r.success for r in first.sync_results)
        copy = ItemStore.for_project(sibling).load(first.item.id)
        assert copy.org_display_number == 1
        assert copy.title == "Org one"

    @pytest.mark.asyncio
    async def test_sync_failure_does_not_fail_create(self, org_setup) -> None:
        service, sibling = org_setup
        issues = sibling / ".tally" / "issues"
        issues.rmdir()
        issues.write_text("blocked")

        result = await service.create_item(CreateItemOptions(title="Org", is_org_item=True))

        assert service.store.exists(result.item.id)
        assert [r.success for r in result.sync_results] == [False]


class TestUpdateAndDelete:
    """Tests for update_item and delete_item."""

    @pytest.mark.asyncio
    async def test_update_keeps_number_and_created_at(self, service: ItemService) -> None:
        created = (await service.create_item(CreateItemOptions(title="Old"))).item

        result = await service.update_item(
            created.id, UpdateItemOptions(title="New", status="closed", priority=1)
        )

        assert result.item.title == "New"
        assert result.item.status == "closed"
        assert result.item.priority == 1
        assert result.item.display_number == created.display_number
        assert result.item.created_at == created.created_at
        assert service.store.load(created.id) == result.item

    @pytest.mark.asyncio
    async def test_update_missing_item(self, service: ItemService) -> None:
        with pytest.raises(ItemNotFoundError):
            await service.update_item("missing", UpdateItemOptions(title="x"))

    @pytest.mark.asyncio
    async def test_update_rejects_bad_status(self, service: ItemService) -> None:
        created = (await service.create_item(CreateItemOptions(title="Old"))).item

        with pytest.raises(ItemValidationError):
            await service.update_item(created.id, UpdateItemOptions(status="nope"))

    @pytest.mark.asyncio
    async def test_org_update_propagates(self, org_setup) -> None:
        service, sibling = org_setup
        created = (await service.create_item(CreateItemOptions(title="Org", is_org_item=True))).item
        sibling_before = ItemStore.for_project(sibling).load(created.id)

        result = await service.update_item(created.id, UpdateItemOptions(title="Org renamed"))

        sibling_after = ItemStore.for_project(sibling).load(created.id)
        assert [r.success for r in result.sync_results] == [True]
        assert sibling_after.title == "Org renamed"
        assert sibling_after.display_number == sibling_before.display_number

    @pytest.mark.asyncio
    async def test_soft_delete(self, service: ItemService) -> None:
        created = (await service.create_item(CreateItemOptions(title="Doomed"))).item

        result = await service.delete_item(created.id)

        assert result.item.is_deleted
        assert service.store.load(created.id).deleted_at == result.item.deleted_at
        assert await service.list_items() == []
        assert [i.id for i in await service.list_items(include_deleted=True)] == [created.id]

    @pytest.mark.asyncio
    async def test_deleted_number_is_not_reused(self, service: ItemService) -> None:
        created = (await service.create_item(CreateItemOptions(title="Doomed"))).item
        await service.delete_item(created.id)

        result = await service.create_item(CreateItemOptions(title="Next"))

        assert result.item.display_number == created.display_number + 1


class TestLookups:
    """Tests for get_item, get_item_by_display_number and list_items."""

    @pytest.mark.asyncio
    async def test_get_item(self, service: ItemService) -> None:
        created = (await service.create_item(CreateItemOptions(title="Find me"))).item

        assert (await service.get_item(created.id)).title == "Find me"

    @pytest.mark.asyncio
    async def test_get_by_display_number_includes_deleted(self, service: ItemService) -> None:
        created = (await service.create_item(CreateItemOptions(title="Gone"))).item
        await service.delete_item(created.id)

        found = await service.get_item_by_display_number(created.display_number)

        assert found.id == created.id

    @pytest.mark.asyncio
    async def test_get_by_unknown_display_number(self, service: ItemService) -> None:
        with pytest.raises(DisplayNumberNotFoundError):
            await service.get_item_by_display_number(42)

    @pytest.mark.asyncio
    async def test_list_sorted_after_reconcile(
        self, service: ItemService, store: ItemStore, make_item
    ) -> None:
        store.write_item(make_item("c", display_number=3))
        store.write_item(make_item("a", display_number=0))
        store.write_item(make_item("b", display_number=1))

        items = await service.list_items()

        assert [(i.id, i.display_number) for i in items] == [("b", 1), ("c", 3), ("a", 4)]
