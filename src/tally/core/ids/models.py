"""
Counter models for organization-wide display numbers.

The org counter registry is a single JSON document outside every project:

    {
      "nextDisplayNumber": {"acme": 4},
      "updatedAt": "2026-01-16T14:32:00.000000Z"
    }
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tally.utils.project import now_iso

FIRST_ORG_DISPLAY_NUMBER = 1


class OrgCounterState(BaseModel):
    """
    Next available org display number per organization slug.

    Values only ever increase; a value handed out by ``increment`` is never
    handed out again for the same organization.

    Example:
        >>> state = OrgCounterState()
        >>> state.increment("acme")
        1
        >>> state.next_display_number
        {'acme': 2}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    next_display_number: dict[str, Annotated[int, Field(ge=1)]] = Field(
        default_factory=dict,
        description="Next available org display number keyed by org slug",
    )

    updated_at: str = Field(
        default_factory=now_iso,
        description="Timestamp of the last counter update",
    )

    def peek(self, org_slug: str) -> int:
        """Return the number the next allocation for ``org_slug`` would hand out."""
        return self.next_display_number.get(org_slug, FIRST_ORG_DISPLAY_NUMBER)

    def increment(self, org_slug: str) -> int:
        """
        Increment and return the next org display number.

        Returns:
            The allocated number (before incrementing).
        """
        allocated = self.peek(org_slug)
        self.next_display_number[org_slug] = allocated + 1
        self.updated_at = now_iso()
        return allocated

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
