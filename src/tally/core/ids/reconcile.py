"""
Display number reconciliation.

Items created offline in different clones can end up with the same display
number once their histories are merged. Reconciliation restores uniqueness:

1. Items still carrying the ``0`` sentinel are all given fresh numbers,
   even when there is only one of them.
2. Within any other group of items sharing a number, the oldest item (by
   ``created_at``, then ``id``) keeps the number and the rest get fresh ones.
3. Fresh numbers start strictly above the largest number observed before
   the run and increase by one per reassignment.

Only reassigned items are rewritten. Running it twice in a row reassigns
nothing the second time.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from tally.core.items.models import Item, LegacyItemDir, ScanSkipped, StoredItem
from tally.core.items.store import ItemStore
from tally.utils.project import now_iso

logger = logging.getLogger(__name__)

UNASSIGNED = 0


@dataclass(frozen=True)
class Reassignment:
    """A single display number change decided by reconciliation."""

    item_id: str
    old_number: int
    new_number: int


@dataclass
class ReconcileReport:
    """Outcome of a reconciliation run."""

    reassignments: list[Reassignment] = field(default_factory=list)
    skipped: list[ScanSkipped] = field(default_factory=list)

    @property
    def reassigned_count(self) -> int:
        return len(self.reassignments)


def plan_reconciliation(items: list[Item]) -> list[Reassignment]:
    """
    Decide which items need a new display number.

    Pure: works on already-loaded items and performs no I/O. Groups are
    processed in ascending number order (the ``0`` group first) so the
    result is deterministic for a given item set.

    Args:
        items: Every item of the project, deleted ones included

    Returns:
        Reassignments in the order their new numbers were handed out
    """
    groups: dict[int, list[Item]] = defaultdict(list)
    for item in items:
        groups[item.display_number].append(item)

    next_available = max((item.display_number for item in items), default=0) + 1
    reassignments: list[Reassignment] = []

    for number in sorted(groups):
        group = sorted(groups[number], key=lambda i: (i.created_at, i.id))

        if number == UNASSIGNED:
            # 0 is never a valid final value, so every member moves
            losers = group
        elif len(group) > 1:
            losers = group[1:]
        else:
            continue

        for item in losers:
            reassignments.append(
                Reassignment(item_id=item.id, old_number=number, new_number=next_available)
            )
            next_available += 1

    return reassignments


def _apply(store: ItemStore, records: dict[str, StoredItem], plan: list[Reassignment]) -> None:
    for change in plan:
        record = records[change.item_id]
        updated = record.item.model_copy(
            update={"display_number": change.new_number, "updated_at": now_iso()}
        )
        # write_item also retires a legacy directory for the same id
        store.write_item(updated)
        if isinstance(record, LegacyItemDir):
            logger.info("Migrated legacy item %s while reassigning it", change.item_id)
        logger.info(
            "Reassigned item %s display number %d -> %d",
            change.item_id,
            change.old_number,
            change.new_number,
        )


async def reconcile_display_numbers(store: ItemStore) -> ReconcileReport:
    """
    Reconcile display numbers of a project so nonzero numbers are unique.

    Not lock-protected: it is safe to run redundantly and repairs whatever
    collisions concurrent or offline writers produced.

    Args:
        store: Item store of the project

    Returns:
        ReconcileReport with the reassignments made and entries skipped
    """
    scan = await asyncio.to_thread(store.scan)
    records = {record.item.id: record for record in scan.records}
    plan = plan_reconciliation([record.item for record in records.values()])

    if plan:
        await asyncio.to_thread(_apply, store, records, plan)
        logger.info("Reconciled %s: %d items reassigned", store.items_dir, len(plan))

    return ReconcileReport(reassignments=plan, skipped=scan.skipped)
