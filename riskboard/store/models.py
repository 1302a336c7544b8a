"""Data models for the ranked set store."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class RankedEntry(BaseModel):
    """One member of a ranked set.

    The score must be finite; ids are unique within a set, a later write for
    the same id replaces the earlier score.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1, description="Entity id (set member)")]
    score: Annotated[float, Field(allow_inf_nan=False, description="Ranking metric")]
