"""
Project registry: organizations and the projects that belong to them.
"""

from tally.core.projects.models import (
    Organization,
    ProjectInfo,
    ProjectRegistryFile,
    TrackedProject,
)
from tally.core.projects.registry import (
    ProjectRegistry,
    ProjectRegistryError,
    SiblingResolver,
    normalize_path,
)

__all__ = [
    "Organization",
    "ProjectInfo",
    "ProjectRegistry",
    "ProjectRegistryError",
    "ProjectRegistryFile",
    "SiblingResolver",
    "TrackedProject",
    "normalize_path",
]
