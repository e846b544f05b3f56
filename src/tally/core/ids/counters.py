"""
Organization counter registry for org-wide display numbers.

Counters live in a single JSON file in the tally home directory
(``~/.tally/org-issues-registry.json`` by default), outside any project,
so that every project of an organization draws from the same sequence.

Allocation is serialized with exactly one lock per registry instance,
and the application builds one instance and hands it to every caller:
1. Acquire the lock (shared by all organizations)
2. Load the registry file (a missing file is an empty registry)
3. Take the current value for the org (1 if absent) and store value + 1
4. Write to a temporary file and replace the registry file with it
5. Release the lock and return the value taken in step 3

The stored value is the source of truth. When the file cannot be read,
parsed or written, allocation fails; no number is ever guessed.

Example:
    >>> registry = OrgCounterRegistry(Path("~/.tally/org-issues-registry.json").expanduser())
    >>> await registry.allocate("acme")
    1
    >>> await registry.allocate("acme")
    2
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError

from tally.core.config.models import TallyConfig
from tally.core.errors import TallyError
from tally.core.ids.models import OrgCounterState

logger = logging.getLogger(__name__)

COUNTERS_FILE = "org-issues-registry.json"


class CounterAllocationError(TallyError):
    """Exception raised when an org counter cannot be read, allocated or persisted."""

    def __init__(self, message: str, org_slug: str | None = None):
        super().__init__(message)
        self.org_slug = org_slug


class OrgCounterRegistry:
    """
    Lock-protected, atomically written org counter store.

    Every allocation for every organization contends on the same lock.
    """

    def __init__(self, path: Path):
        """
        Args:
            path: Location of the registry JSON file (created lazily)
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: TallyConfig) -> OrgCounterRegistry:
        return cls(config.home_path / COUNTERS_FILE)

    def _load(self) -> OrgCounterState:
        """Read the registry file; a missing file is an empty registry."""
        if not self.path.exists():
            logger.info("No org counter registry at %s, starting empty", self.path)
            return OrgCounterState()

        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CounterAllocationError(f"Failed to read {self.path}: {e}") from e

        try:
            return OrgCounterState.model_validate_json(content)
        except ValidationError as e:
            raise CounterAllocationError(f"Corrupt org counter registry {self.path}: {e}") from e

    def _save(self, state: OrgCounterState) -> None:
        """Write the registry atomically via a temp file and rename."""
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(state.to_json(), encoding="utf-8")
            temp_path.replace(self.path)
        except OSError as e:
            # Clean up temp file on failure
            if temp_path.exists():
                temp_path.unlink()
            raise CounterAllocationError(f"Failed to write {self.path}: {e}") from e

    async def read(self) -> OrgCounterState:
        """
        Read the current counter state.

        Raises:
            CounterAllocationError: If the registry file is unreadable or corrupt
        """
        async with self._lock:
            return await asyncio.to_thread(self._load)

    async def peek(self, org_slug: str) -> int:
        """Return the value the next ``allocate(org_slug)`` would hand out."""
        state = await self.read()
        return state.peek(org_slug)

    async def allocate(self, org_slug: str) -> int:
        """
        Allocate the next org display number for an organization.

        Args:
            org_slug: Organization slug

        Returns:
            The allocated org display number (1-based)

        Raises:
            CounterAllocationError: If the registry cannot be read or written
        """
        if not org_slug:
            raise CounterAllocationError("Organization slug is required")

        async with self._lock:
            try:
                state = await asyncio.to_thread(self._load)
                allocated = state.increment(org_slug)
                await asyncio.to_thread(self._save, state)
            except CounterAllocationError as e:
                e.org_slug = org_slug
                logger.error("Org counter allocation for %s failed: %s", org_slug, e)
                raise

        logger.info("Allocated org display number %d for %s", allocated, org_slug)
        return allocated
