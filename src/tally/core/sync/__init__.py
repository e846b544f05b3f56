"""
Organization sync: replicate org items across sibling projects.
"""

from tally.core.sync.models import REGISTRY_TARGET, SyncResult
from tally.core.sync.service import (
    OrgSyncService,
    create_item_in_project,
    update_or_create_item_in_project,
)

__all__ = [
    "OrgSyncService",
    "REGISTRY_TARGET",
    "SyncResult",
    "create_item_in_project",
    "update_or_create_item_in_project",
]
