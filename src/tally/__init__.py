"""
Tally - offline-safe issue numbering and organization sync.

Assigns human-facing display numbers to items stored one file per item,
repairs collisions after independent histories merge, and replicates
organization-scoped items across sibling projects.
"""

__version__ = "0.4.0-dev"

# Re-export core models for convenience
from tally.core.config.models import TallyConfig
from tally.core.items.models import Item
from tally.core.sync.models import SyncResult

__all__ = ["TallyConfig", "Item", "SyncResult", "__version__"]
