"""
Display number allocation, reconciliation and org-wide counters.
"""

from tally.core.ids.allocator import compute_next_display_number, next_display_number
from tally.core.ids.counters import CounterAllocationError, OrgCounterRegistry
from tally.core.ids.models import OrgCounterState
from tally.core.ids.reconcile import (
    Reassignment,
    ReconcileReport,
    plan_reconciliation,
    reconcile_display_numbers,
)

__all__ = [
    "CounterAllocationError",
    "OrgCounterRegistry",
    "OrgCounterState",
    "Reassignment",
    "ReconcileReport",
    "compute_next_display_number",
    "next_display_number",
    "plan_reconciliation",
    "reconcile_display_numbers",
]
