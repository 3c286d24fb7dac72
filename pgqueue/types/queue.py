"""
Queue configuration type.
"""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, field_validator

from pgqueue.constants import (
    CLAIM_INDEX_SUFFIX,
    DEFAULT_NAME_PREFIX,
    MAX_NAME_PREFIX_LENGTH,
    NAME_PREFIX_PATTERN,
    SEQUENCE_SUFFIX,
)


class QueueConfig(BaseModel):
    """
    Immutable per-queue configuration.

    Attributes:
        name_prefix: Name of the queue table; the sequence and index
            names are derived from it.
        visibility_timeout: How long a claim stays valid before the row
            may be claimed again. Zero disables reclaiming entirely.
    """

    model_config = ConfigDict(frozen=True)

    name_prefix: str = DEFAULT_NAME_PREFIX
    visibility_timeout: timedelta = timedelta(0)

    @field_validator("name_prefix")
    @classmethod
    def validate_name_prefix(cls, value: str) -> str:
        if not NAME_PREFIX_PATTERN.match(value):
            raise ValueError(
                "name_prefix must be a lowercase SQL identifier "
                "(letters, digits, underscores; not starting with a digit)"
            )
        if len(value) > MAX_NAME_PREFIX_LENGTH:
            raise ValueError(
                f"name_prefix must be at most {MAX_NAME_PREFIX_LENGTH} characters"
            )
        return value

    @field_validator("visibility_timeout")
    @classmethod
    def validate_visibility_timeout(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("visibility_timeout must not be negative")
        return value

    @property
    def table_name(self) -> str:
        return self.name_prefix

    @property
    def sequence_name(self) -> str:
        return f"{self.name_prefix}{SEQUENCE_SUFFIX}"

    @property
    def index_name(self) -> str:
        return f"{self.name_prefix}{CLAIM_INDEX_SUFFIX}"

    @property
    def reclaim_enabled(self) -> bool:
        """Whether expired claims are eligible for a fresh claim."""
        return self.visibility_timeout > timedelta(0)
