"""
Items: models, file storage and the service that creates and updates them.
"""

from tally.core.items.models import (
    CurrentItemFile,
    Item,
    ItemLayout,
    LegacyItemDir,
    ScanOk,
    ScanReport,
    ScanSkipped,
    StoredItem,
)
from tally.core.items.store import ItemStore, migrate

__all__ = [
    "CurrentItemFile",
    "Item",
    "ItemLayout",
    "ItemStore",
    "LegacyItemDir",
    "ScanOk",
    "ScanReport",
    "ScanSkipped",
    "StoredItem",
    "migrate",
]
