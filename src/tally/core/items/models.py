"""
Item data models for tally.

Defines the Item model stored as a Markdown file with YAML frontmatter,
the tagged layout records produced when reading items from disk, and the
per-entry outcomes collected by best-effort directory scans.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Middle of the default three levels; unrecognized legacy priorities land here
DEFAULT_PRIORITY = 2

# Legacy string priorities mapped onto numeric levels (1 = highest)
LEGACY_PRIORITY_NAMES = {
    "critical": 1,
    "urgent": 1,
    "high": 1,
    "medium": DEFAULT_PRIORITY,
    "normal": DEFAULT_PRIORITY,
    "low": 3,
}


def _coerce_priority(value: Any) -> Any:
    """Map legacy labels ("high", "P1", "2") to levels; anything unusable becomes the default."""
    if isinstance(value, bool):
        return DEFAULT_PRIORITY
    if isinstance(value, str):
        label = value.strip().lower()
        if label in LEGACY_PRIORITY_NAMES:
            return LEGACY_PRIORITY_NAMES[label]
        digits = label[1:] if label.startswith("p") else label
        if digits.isdecimal() and int(digits) >= 1:
            return int(digits)
        return DEFAULT_PRIORITY
    if isinstance(value, int) and value < 1:
        return DEFAULT_PRIORITY
    return value


def _timestamp_to_str(value: Any) -> Any:
    """Normalize YAML-parsed datetimes back into ISO strings."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
            return value.isoformat().replace("+00:00", "Z")
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


class ItemLayout(str, Enum):
    """On-disk layout an item was read from."""

    CURRENT = "current"
    LEGACY = "legacy"


class Item(BaseModel):
    """
    A work item (issue) in a tally project.

    Field names are snake_case in Python and camelCase on disk. The file
    name, not the ``id`` key in the frontmatter, is authoritative for the id.

    Example:
        >>> item = Item(
        ...     id="0b9c2f0e-7f43-4d55-9a43-2d1c1f3b2a10",
        ...     title="Fix login redirect",
        ...     display_number=4,
        ...     created_at="2026-01-16T14:32:00.000000Z",
        ...     updated_at="2026-01-16T14:32:00.000000Z",
        ... )
        >>> item.display_number
        4
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Stable, globally unique identifier")
    title: str = Field(default="", description="Item title (H1 heading of the body)")
    body: str = Field(default="", description="Markdown body after the title")

    display_number: int = Field(
        default=0,
        ge=0,
        description="Project-local sequence number (0 = never assigned)",
    )
    org_display_number: int | None = Field(
        default=None,
        ge=1,
        description="Organization-wide sequence number for org items",
    )

    status: str = Field(default="open")
    priority: int = Field(
        default=DEFAULT_PRIORITY, ge=1, description="Priority level (1 = highest)"
    )
    custom_fields: dict[str, str] = Field(default_factory=dict)

    created_at: str = Field(..., description="Creation timestamp, the reconciliation tie-break")
    updated_at: str = Field(..., description="Last modification timestamp")
    deleted_at: str | None = Field(default=None, description="Soft-delete marker")

    draft: bool = Field(default=False)
    is_org_item: bool = Field(default=False)
    org_slug: str | None = Field(default=None)

    @field_validator("created_at", "updated_at", "deleted_at", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Any:
        """Accept datetimes produced by YAML parsing."""
        return _timestamp_to_str(v)

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> Any:
        """Accept legacy priorities: labels, "P<n>" strings and out-of-range numbers."""
        return _coerce_priority(v)

    @field_validator("custom_fields", mode="before")
    @classmethod
    def stringify_custom_fields(cls, v: Any) -> Any:
        """Custom field values are stored as strings; legacy JSON may hold other types."""
        if v is None:
            return {}
        if isinstance(v, dict):
            return {
                str(k): val if isinstance(val, str) else json.dumps(val)
                for k, val in v.items()
            }
        return v

    @model_validator(mode="after")
    def check_org_fields(self) -> Item:
        """An org slug is required for org items and meaningless otherwise."""
        if self.is_org_item and not self.org_slug:
            raise ValueError("Org items require an org_slug")
        if not self.is_org_item and self.org_slug:
            raise ValueError("org_slug is only valid on org items")
        return self

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_frontmatter_dict(self) -> dict[str, Any]:
        """
        Convert the item to a frontmatter dictionary (camelCase keys).

        Optional fields are only included when set, matching the files
        written by earlier releases.
        """
        metadata: dict[str, Any] = {
            "id": self.id,
            "displayNumber": self.display_number,
            "status": self.status,
            "priority": self.priority,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

        if self.org_display_number is not None:
            metadata["orgDisplayNumber"] = self.org_display_number
        if self.draft:
            metadata["draft"] = True
        if self.deleted_at is not None:
            metadata["deletedAt"] = self.deleted_at
        if self.is_org_item:
            metadata["isOrgItem"] = True
            metadata["orgSlug"] = self.org_slug
        if self.custom_fields:
            metadata["customFields"] = dict(self.custom_fields)

        return metadata

    @classmethod
    def from_frontmatter_dict(
        cls, item_id: str, metadata: dict[str, Any], title: str, body: str
    ) -> Item:
        """
        Build an Item from parsed frontmatter plus the title/body split.

        Args:
            item_id: Id taken from the file or directory name
            metadata: Frontmatter (or legacy metadata.json) dictionary
            title: Title from the H1 heading
            body: Remaining markdown

        Raises:
            pydantic.ValidationError: If required fields are missing or invalid
        """
        # Null values fall back to defaults
        data = {k: v for k, v in metadata.items() if v is not None}
        # Legacy metadata used issue-specific key names
        if "isOrgIssue" in data and "isOrgItem" not in data:
            data["isOrgItem"] = data.pop("isOrgIssue")
        _normalize_org_fields(data)
        data["id"] = item_id
        data["title"] = title
        data["body"] = body
        return cls.model_validate(data)


def _normalize_org_fields(data: dict[str, Any]) -> None:
    """
    Make org keys read from disk consistent instead of rejecting the item.

    A slug without the flag marks an org item. A flag without a slug, or a
    slug with the flag explicitly false, is treated as a project item.
    """
    slug = data.get("orgSlug")
    flag = data.get("isOrgItem")
    if slug and flag is None:
        data["isOrgItem"] = True
    elif slug and not flag:
        data.pop("orgSlug")
    elif flag and not slug:
        data["isOrgItem"] = False
        data.pop("orgSlug", None)


@dataclass(frozen=True)
class CurrentItemFile:
    """An item stored as a single ``<id>.md`` file."""

    path: Path
    item: Item

    @property
    def layout(self) -> ItemLayout:
        return ItemLayout.CURRENT


@dataclass(frozen=True)
class LegacyItemDir:
    """An item stored in a legacy ``<id>/`` directory (metadata.json + issue.md)."""

    path: Path
    item: Item

    @property
    def layout(self) -> ItemLayout:
        return ItemLayout.LEGACY

    @property
    def assets_path(self) -> Path:
        return self.path / "assets"


StoredItem = Union[CurrentItemFile, LegacyItemDir]


@dataclass(frozen=True)
class ScanOk:
    """A directory entry that parsed into an item."""

    record: StoredItem


@dataclass(frozen=True)
class ScanSkipped:
    """A directory entry that was skipped, with the reason."""

    name: str
    reason: str


ScanOutcome = Union[ScanOk, ScanSkipped]


@dataclass
class ScanReport:
    """Outcome of a best-effort scan over an items directory."""

    outcomes: list[ScanOutcome] = field(default_factory=list)

    @property
    def records(self) -> list[StoredItem]:
        return [o.record for o in self.outcomes if isinstance(o, ScanOk)]

    @property
    def items(self) -> list[Item]:
        return [record.item for record in self.records]

    @property
    def skipped(self) -> list[ScanSkipped]:
        return [o for o in self.outcomes if isinstance(o, ScanSkipped)]
