"""
Configuration data models for tally.

These models define the structure of <project>/.tally/config.json and
~/.config/tally/config.json files, with validation via Pydantic.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SyncConfig(BaseModel):
    """
    Cross-project synchronization of organization items.
    """
    parallel: bool = Field(
        default=True,
        description="Propagate to sibling projects concurrently"
    )


class ItemsConfig(BaseModel):
    """
    Validation rules for item fields.
    """
    allowed_statuses: list[str] = Field(
        default_factory=lambda: ["open", "in-progress", "closed"],
        min_length=1,
        description="Statuses an item may carry"
    )
    default_status: str = Field(
        default="open",
        description="Status given to new items"
    )
    priority_levels: int = Field(
        default=3,
        ge=1,
        description="Number of priority levels (1 = highest)"
    )

    @property
    def default_priority(self) -> int:
        """Middle priority level, rounded towards higher priority."""
        return (self.priority_levels + 1) // 2

    @model_validator(mode="after")
    def check_default_status(self) -> "ItemsConfig":
        if self.default_status not in self.allowed_statuses:
            raise ValueError(
                f"default_status '{self.default_status}' is not one of {self.allowed_statuses}"
            )
        return self


class LoggingConfig(BaseModel):
    """
    Logging verbosity.
    """
    level: str = Field(
        default="WARNING",
        description="Standard logging level name"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid logging level: {v}")
        return level


class TallyConfig(BaseModel):
    """
    Top-level tally configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = TallyConfig(sync=SyncConfig(parallel=False))
        >>> config.items.default_priority
        2
    """
    home_dir: str = Field(
        default="~/.tally",
        description="Directory holding the org counter and project registries"
    )
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Organization sync settings"
    )
    items: ItemsConfig = Field(
        default_factory=ItemsConfig,
        description="Item validation settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )

    @property
    def home_path(self) -> Path:
        return Path(self.home_dir).expanduser()
