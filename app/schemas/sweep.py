"""Sweep metrics schema."""

from pydantic import BaseModel, ConfigDict, Field


class SweepMetrics(BaseModel):
    """Outcome of one expiry sweep.

    ``skipped`` means another sweeper held the lock; that counts as a
    successful no-op, not an error.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    deleted_count: int = Field(0, alias="deletedCount")
    errors: list[str] = Field(default_factory=list)
    skipped: bool = False
