"""
Tests for the project registry.

Tests cover organization membership, sibling resolution and the
on-disk registry format.
"""

from __future__ import annotations

import json

import pytest

from tally.core.projects.registry import (
    ProjectRegistry,
    ProjectRegistryError,
    SiblingResolver,
    normalize_path,
)


class TestSiblingResolution:
    """Tests for list_sibling_projects."""

    @pytest.mark.asyncio
    async def test_empty_registry(self, projects: ProjectRegistry) -> None:
        assert await projects.list_sibling_projects("acme", "/nowhere") == []

    @pytest.mark.asyncio
    async def test_lists_initialized_siblings_only(
        self, projects: ProjectRegistry, make_project
    ) -> None:
        source = make_project("api")
        web = make_project("web")
        bare = make_project("bare", initialized=False)
        archived = make_project("old")
        other_org = make_project("other")
        await projects.create_organization("acme", "Acme")
        await projects.create_organization("globex", "Globex")
        for project in (source, web, bare, archived):
            await projects.track_project(project, organization_slug="acme")
        await projects.track_project(other_org, organization_slug="globex")
        await projects.set_archived(archived)

        siblings = await projects.list_sibling_projects("acme", str(source))

        assert [s.path for s in siblings] == [str(web)]
        assert siblings[0].initialized is True
        assert siblings[0].organization_slug == "acme"
        assert siblings[0].name == "web"

    def test_registry_satisfies_resolver_protocol(self, projects: ProjectRegistry) -> None:
        assert isinstance(projects, SiblingResolver)


class TestMembership:
    """Tests for organizations and tracked projects."""

    @pytest.mark.asyncio
    async def test_untracked_project_has_no_org(self, projects: ProjectRegistry, make_project) -> None:
        assert await projects.get_project_organization(make_project("api")) is None

    @pytest.mark.asyncio
    async def test_track_with_org(self, projects: ProjectRegistry, make_project) -> None:
        api = make_project("api")
        await projects.create_organization("acme", "Acme")

        await projects.track_project(api, organization_slug="acme")

        assert await projects.get_project_organization(api) == "acme"

    @pytest.mark.asyncio
    async def test_retracking_keeps_org(self, projects: ProjectRegistry, make_project) -> None:
        api = make_project("api")
        await projects.create_organization("acme", "Acme")
        await projects.track_project(api, organization_slug="acme")

        await projects.track_project(api)

        assert await projects.get_project_organization(api) == "acme"

    @pytest.mark.asyncio
    async def test_unknown_org_rejected(self, projects: ProjectRegistry, make_project) -> None:
        with pytest.raises(ProjectRegistryError, match="Unknown organization"):
            await projects.track_project(make_project("api"), organization_slug="nope")

    @pytest.mark.asyncio
    async def test_renaming_org_keeps_created_at(self, projects: ProjectRegistry) -> None:
        first = await projects.create_organization("acme", "Acme")

        renamed = await projects.create_organization("acme", "Acme Inc")

        assert renamed.name == "Acme Inc"
        assert renamed.created_at == first.created_at
        assert (await projects.get_organization("acme")).name == "Acme Inc"

    @pytest.mark.asyncio
    async def test_archive_untracked_project(self, projects: ProjectRegistry, make_project) -> None:
        with pytest.raises(ProjectRegistryError):
            await projects.set_archived(make_project("api"))


class TestRegistryFile:
    """Tests for the JSON document on disk."""

    @pytest.mark.asyncio
    async def test_camel_case_format(self, projects: ProjectRegistry, make_project) -> None:
        api = make_project("api")
        await projects.create_organization("acme", "Acme")
        await projects.track_project(api, organization_slug="acme")

        data = json.loads(projects.path.read_text())

        assert data["schemaVersion"] == 1
        assert data["organizations"]["acme"]["name"] == "Acme"
        entry = data["projects"][normalize_path(api)]
        assert entry["organizationSlug"] == "acme"
        assert entry["isArchived"] is False
        assert "firstAccessed" in entry and "lastAccessed" in entry

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, projects: ProjectRegistry) -> None:
        projects.path.parent.mkdir(parents=True)
        projects.path.write_text("{broken")

        with pytest.raises(ProjectRegistryError):
            await projects.list_sibling_projects("acme", "/x")

    @pytest.mark.asyncio
    async def test_undecodable_file_raises(self, projects: ProjectRegistry) -> None:
        projects.path.parent.mkdir(parents=True)
        projects.path.write_bytes(b"\xff\xfe{}")

        with pytest.raises(ProjectRegistryError):
            await projects.get_project_organization("/x")
