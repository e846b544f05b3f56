"""
Display number allocation.

The next display number of a project is derived from the items on disk:
``max(observed) + 1``. It is a best-effort value that is always recomputed
and never stored. Two concurrent creations may compute the same number;
reconciliation repairs that afterwards.
"""

from __future__ import annotations

import asyncio
import logging

from tally.core.items.models import ScanReport
from tally.core.items.store import ItemStore

logger = logging.getLogger(__name__)


def compute_next_display_number(report: ScanReport) -> int:
    """
    Return ``max(display_number) + 1`` over the scanned items, or 1 if none.

    Skipped entries do not contribute.
    """
    return max((item.display_number for item in report.items), default=0) + 1


async def next_display_number(store: ItemStore) -> int:
    """
    Compute the next display number for the project behind ``store``.

    Both current and legacy layouts are scanned; entries that fail to parse
    are skipped. A missing or empty directory yields 1.

    Args:
        store: Item store of the project

    Returns:
        The next display number
    """
    report = await asyncio.to_thread(store.scan)
    number = compute_next_display_number(report)
    logger.debug("Next display number in %s: %d", store.items_dir, number)
    return number
