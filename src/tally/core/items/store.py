"""
Item storage layer for reading/writing items from a project directory.

Two on-disk layouts are understood:

1. Current: ``<items_dir>/<id>.md``
   - YAML frontmatter (camelCase keys) followed by ``# Title`` and body
   - Written with a plain overwrite; item files are not written atomically
2. Legacy: ``<items_dir>/<id>/`` holding ``metadata.json`` and ``issue.md``
   - Read transparently, migrated to the current layout on first access,
     then the directory is removed. Assets move to ``assets/<id>/``.

Uses python-frontmatter for parsing Markdown files with YAML frontmatter.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

import frontmatter
import yaml
from pydantic import ValidationError

from tally.core.errors import ItemNotFoundError, ItemValidationError, MalformedItemError
from tally.core.items.models import (
    CurrentItemFile,
    Item,
    LegacyItemDir,
    ScanOk,
    ScanReport,
    ScanSkipped,
    StoredItem,
)
from tally.utils.project import get_items_path

logger = logging.getLogger(__name__)

ITEM_SUFFIX = ".md"
ASSETS_DIR = "assets"
LEGACY_METADATA_FILE = "metadata.json"
LEGACY_CONTENT_FILE = "issue.md"


def split_title_body(content: str) -> tuple[str, str]:
    """
    Split markdown content into its H1 title and the remaining body.

    Returns:
        (title, body); title is empty when the content has no leading H1
    """
    lines = content.splitlines()
    while lines and not lines[0].strip():
        lines.pop(0)

    if lines and lines[0].startswith("# "):
        title = lines[0][2:].strip()
        rest = lines[1:]
        while rest and not rest[0].strip():
            rest.pop(0)
        return title, "\n".join(rest).rstrip()

    return "", "\n".join(lines).rstrip()


def render_item(item: Item) -> str:
    """Render an item as frontmatter plus ``# Title`` and body."""
    content = f"# {item.title}\n"
    if item.body:
        content += f"\n{item.body}\n"
    post = frontmatter.Post(content)
    post.metadata = item.to_frontmatter_dict()
    return frontmatter.dumps(post) + "\n"


def migrate(legacy: LegacyItemDir) -> CurrentItemFile:
    """
    Translate a legacy directory record into its current-layout equivalent.

    Pure: nothing is read or written. Every field, ``created_at`` included,
    carries over unchanged.
    """
    target = legacy.path.parent / f"{legacy.item.id}{ITEM_SUFFIX}"
    return CurrentItemFile(path=target, item=legacy.item)


class ItemStore:
    """
    Storage layer for the items of one project.

    Example:
        store = ItemStore.for_project(Path("/work/api"))
        report = store.scan()
        item = store.load("0b9c2f0e-7f43-4d55-9a43-2d1c1f3b2a10")
        store.write_item(item.model_copy(update={"status": "closed"}))
    """

    def __init__(self, items_dir: Path):
        """
        Initialize store with an items directory.

        Args:
            items_dir: Directory containing item files (need not exist yet)
        """
        self.items_dir = Path(items_dir)

    @classmethod
    def for_project(cls, project_path: Path) -> ItemStore:
        """Create a store for the standard items directory of a project."""
        return cls(get_items_path(Path(project_path)))

    def item_file_path(self, item_id: str) -> Path:
        _check_item_id(item_id)
        return self.items_dir / f"{item_id}{ITEM_SUFFIX}"

    def legacy_dir_path(self, item_id: str) -> Path:
        _check_item_id(item_id)
        return self.items_dir / item_id

    def assets_path(self, item_id: str) -> Path:
        _check_item_id(item_id)
        return self.items_dir / ASSETS_DIR / item_id

    def exists(self, item_id: str) -> bool:
        """Check whether an item exists in either layout."""
        return self.item_file_path(item_id).is_file() or self.legacy_dir_path(item_id).is_dir()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def scan(self) -> ScanReport:
        """
        Read every item in the directory without modifying anything.

        Entries that cannot be read or parsed are reported as skipped; a
        single bad entry never fails the scan. Files that are not items
        (other extensions, hidden files, the assets directory) are ignored.

        Returns:
            ScanReport with one outcome per item-like entry
        """
        report = ScanReport()
        if not self.items_dir.is_dir():
            return report

        for entry in sorted(self.items_dir.iterdir()):
            name = entry.name
            if name.startswith(".") or name == ASSETS_DIR:
                continue

            try:
                if entry.is_file() and entry.suffix == ITEM_SUFFIX:
                    record: StoredItem = self._read_current(entry, entry.stem)
                elif entry.is_dir():
                    record = self._read_legacy(entry, name)
                else:
                    continue
            except (MalformedItemError, OSError) as e:
                reason = e.reason if isinstance(e, MalformedItemError) else str(e)
                logger.warning("Skipping %s: %s", entry, reason)
                report.outcomes.append(ScanSkipped(name=name, reason=reason))
                continue

            report.outcomes.append(ScanOk(record=record))

        logger.debug(
            "Scanned %s: %d items, %d skipped",
            self.items_dir,
            len(report.records),
            len(report.skipped),
        )
        return report

    def read_record(self, item_id: str) -> StoredItem:
        """
        Read an item in whichever layout it is stored, without migrating.

        Raises:
            ItemNotFoundError: If the item doesn't exist
            MalformedItemError: If the item cannot be parsed
        """
        file_path = self.item_file_path(item_id)
        if file_path.is_file():
            return self._read_current(file_path, item_id)

        folder = self.legacy_dir_path(item_id)
        if folder.is_dir():
            return self._read_legacy(folder, item_id)

        raise ItemNotFoundError(item_id)

    def load(self, item_id: str) -> Item:
        """
        Load an item by id, migrating a legacy directory on first access.

        Raises:
            ItemNotFoundError: If the item doesn't exist
            MalformedItemError: If the item cannot be parsed
        """
        record = self.read_record(item_id)
        if isinstance(record, LegacyItemDir):
            record = self.apply_migration(record)
        return record.item

    def _read_current(self, path: Path, item_id: str) -> CurrentItemFile:
        try:
            post = frontmatter.loads(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, UnicodeDecodeError, ValueError, TypeError) as e:
            raise MalformedItemError(path, f"invalid frontmatter: {e}") from e

        if not isinstance(post.metadata, dict) or not post.metadata:
            raise MalformedItemError(path, "missing frontmatter")

        title, body = split_title_body(post.content)
        try:
            item = Item.from_frontmatter_dict(item_id, post.metadata, title, body)
        except ValidationError as e:
            raise MalformedItemError(path, _summarize(e)) from e
        return CurrentItemFile(path=path, item=item)

    def _read_legacy(self, folder: Path, item_id: str) -> LegacyItemDir:
        metadata_path = folder / LEGACY_METADATA_FILE
        if not metadata_path.is_file():
            raise MalformedItemError(folder, f"missing {LEGACY_METADATA_FILE}")

        try:
            metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedItemError(metadata_path, f"invalid JSON: {e}") from e
        if not isinstance(metadata, dict):
            raise MalformedItemError(metadata_path, "metadata is not an object")

        content_path = folder / LEGACY_CONTENT_FILE
        content = ""
        if content_path.is_file():
            raw = content_path.read_bytes()
            try:
                content = raw.decode("utf-8")
            except UnicodeDecodeError:
                # The number lives in metadata.json, so the item still counts
                logger.warning("Invalid UTF-8 in %s, replacing undecodable bytes", content_path)
                content = raw.decode("utf-8", errors="replace")
        title, body = split_title_body(content)

        try:
            item = Item.from_frontmatter_dict(item_id, metadata, title, body)
        except ValidationError as e:
            raise MalformedItemError(metadata_path, _summarize(e)) from e
        return LegacyItemDir(path=folder, item=item)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_item(self, item: Item) -> Path:
        """
        Write an item in the current layout.

        If a legacy directory still exists for the same id, the migration is
        completed: assets are moved and the directory is removed.

        Returns:
            Path to the written item file
        """
        self.items_dir.mkdir(parents=True, exist_ok=True)
        path = self.item_file_path(item.id)
        path.write_text(render_item(item), encoding="utf-8")

        legacy_dir = self.legacy_dir_path(item.id)
        if legacy_dir.is_dir():
            self._retire_legacy_dir(item.id, legacy_dir)

        return path

    def apply_migration(self, legacy: LegacyItemDir) -> CurrentItemFile:
        """Persist the migration of a legacy record and remove the old directory."""
        current = migrate(legacy)
        self.write_item(current.item)
        logger.info("Migrated item %s to %s", legacy.item.id, current.path.name)
        return current

    def _retire_legacy_dir(self, item_id: str, legacy_dir: Path) -> None:
        old_assets = legacy_dir / ASSETS_DIR
        if old_assets.is_dir():
            new_assets = self.assets_path(item_id)
            new_assets.mkdir(parents=True, exist_ok=True)
            for asset in old_assets.iterdir():
                asset.replace(new_assets / asset.name)
            logger.debug("Moved assets for item %s", item_id)
        shutil.rmtree(legacy_dir)

    def remove_item(self, item_id: str) -> None:
        """
        Permanently remove an item (either layout) and its assets.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        file_path = self.item_file_path(item_id)
        legacy_dir = self.legacy_dir_path(item_id)
        if not file_path.is_file() and not legacy_dir.is_dir():
            raise ItemNotFoundError(item_id)

        if file_path.is_file():
            file_path.unlink()
        if legacy_dir.is_dir():
            shutil.rmtree(legacy_dir)
        assets = self.assets_path(item_id)
        if assets.is_dir():
            shutil.rmtree(assets)


def _check_item_id(item_id: str) -> None:
    if (
        not item_id
        or item_id == ASSETS_DIR
        or item_id.startswith(".")
        or "/" in item_id
        or "\\" in item_id
    ):
        raise ItemValidationError(f"Invalid item id: {item_id!r}")


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "item"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
