"""
Pytest configuration and shared fixtures.

Provides isolated tally homes, initialized projects, item factories and
helpers for writing legacy-layout items.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tally.core.config.loader import clear_cache
from tally.core.config.models import TallyConfig
from tally.core.ids.counters import OrgCounterRegistry
from tally.core.items.models import Item
from tally.core.items.store import ItemStore
from tally.core.projects.registry import ProjectRegistry

# ==============================================================================
# Environment Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from the real ~/.tally and ~/.config/tally."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("TALLY_HOME", str(tmp_path / "tally-home"))
    monkeypatch.delenv("TALLY_SYNC_PARALLEL", raising=False)
    monkeypatch.delenv("TALLY_LOG_LEVEL", raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def tally_home(tmp_path: Path) -> Path:
    """The tally home directory TALLY_HOME points at."""
    return tmp_path / "tally-home"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Provide an initialized project (.tally/issues exists)."""
    project = tmp_path / "project"
    (project / ".tally" / "issues").mkdir(parents=True)
    return project


@pytest.fixture
def store(project_dir: Path) -> ItemStore:
    return ItemStore.for_project(project_dir)


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory for additional projects; pass initialized=False for a bare directory."""

    def _make(name: str, initialized: bool = True) -> Path:
        project = tmp_path / "projects" / name
        project.mkdir(parents=True)
        if initialized:
            (project / ".tally" / "issues").mkdir(parents=True)
        return project.resolve()

    return _make


# ==============================================================================
# Registry Fixtures
# ==============================================================================


@pytest.fixture
def config(tally_home: Path) -> TallyConfig:
    return TallyConfig(home_dir=str(tally_home))


@pytest.fixture
def counters(tally_home: Path) -> OrgCounterRegistry:
    return OrgCounterRegistry(tally_home / "org-issues-registry.json")


@pytest.fixture
def projects(tally_home: Path) -> ProjectRegistry:
    return ProjectRegistry(tally_home / "projects.json")


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


@pytest.fixture
def make_item() -> Callable[..., Item]:
    """Factory for items with sensible defaults; keyword arguments override."""

    def _make(item_id: str = "item-a", **overrides: Any) -> Item:
        fields: dict[str, Any] = {
            "id": item_id,
            "title": f"Title of {item_id}",
            "body": "",
            "display_number": 1,
            "created_at": "2026-01-16T14:32:00.000000Z",
            "updated_at": "2026-01-16T14:32:00.000000Z",
        }
        fields.update(overrides)
        return Item(**fields)

    return _make


@pytest.fixture
def write_legacy_item() -> Callable[..., Path]:
    """Write an item in the legacy folder layout (metadata.json + issue.md)."""

    def _write(
        items_dir: Path,
        item_id: str,
        metadata: dict[str, Any],
        content: str = "# Legacy title\n\nLegacy body\n",
        assets: dict[str, bytes] | None = None,
    ) -> Path:
        folder = items_dir / item_id
        folder.mkdir(parents=True)
        (folder / "metadata.json").write_text(json.dumps(metadata, indent=2))
        (folder / "issue.md").write_text(content)
        for name, data in (assets or {}).items():
            (folder / "assets").mkdir(exist_ok=True)
            (folder / "assets" / name).write_bytes(data)
        return folder

    return _write
