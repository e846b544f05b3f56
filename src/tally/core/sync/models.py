"""
Data models for organization sync.

Defines the per-sibling outcome returned by every propagation call.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Target reported when the sibling list itself could not be resolved
REGISTRY_TARGET = "<registry>"


class SyncResult(BaseModel):
    """
    Outcome of propagating one item to one sibling project.

    Example:
        >>> SyncResult.failed("/work/web", "Project not initialized").to_dict()
        {'targetProjectPath': '/work/web', 'success': False, 'error': 'Project not initialized'}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_project_path: str = Field(..., description="Sibling project path or <registry>")
    success: bool
    error: str | None = Field(default=None, description="Failure message when success is False")

    @classmethod
    def ok(cls, target: str) -> SyncResult:
        return cls(target_project_path=target, success=True)

    @classmethod
    def failed(cls, target: str, error: str) -> SyncResult:
        return cls(target_project_path=target, success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
