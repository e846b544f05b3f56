"""
Tests for project layout and discovery utilities.
"""

import re
from pathlib import Path

from tally.utils.project import find_project_root, get_items_path, is_initialized, now_iso


class TestFindProjectRoot:
    """Tests for find_project_root."""

    def test_finds_tally_marker_from_subdirectory(self, tmp_path: Path) -> None:
        project = tmp_path / "project"
        (project / ".tally").mkdir(parents=True)
        nested = project / "src" / "pkg"
        nested.mkdir(parents=True)

        assert find_project_root(nested) == project.resolve()

    def test_finds_git_marker(self, tmp_path: Path) -> None:
        project = tmp_path / "project"
        (project / ".git").mkdir(parents=True)

        assert find_project_root(project) == project.resolve()


class TestLayout:
    """Tests for the .tally layout helpers."""

    def test_items_path(self, tmp_path: Path) -> None:
        assert get_items_path(tmp_path) == tmp_path / ".tally" / "issues"

    def test_is_initialized(self, tmp_path: Path) -> None:
        assert not is_initialized(tmp_path)
        (tmp_path / ".tally").mkdir()
        assert is_initialized(tmp_path)


def test_now_iso_format() -> None:
    value = now_iso()

    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{6}Z", value)
