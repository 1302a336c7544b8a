"""Data models for the risky-accounts ranking."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AccountProfile(BaseModel):
    """Descriptive attributes used to enrich a ranked account id."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    book: Annotated[str, Field(min_length=1)]
    margin_utilization: Annotated[float, Field(ge=0.0, allow_inf_nan=False)] = 0.0


UNKNOWN_PROFILE = AccountProfile(book="UNKNOWN", margin_utilization=0.0)


class ExposureEvent(BaseModel):
    """Exposure change published on the ``risk.exposure.changes`` topic.

    Only account_id and net_exposure feed the ranking; book and margin
    utilization are carried for other consumers.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    account_id: Annotated[str, Field(min_length=1)]
    book: str = ""
    net_exposure: Annotated[float, Field(allow_inf_nan=False)]
    margin_utilization: float = 0.0
