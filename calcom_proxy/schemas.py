"""
Request bodies for the proxy routes.

Required strings must be non-empty and required ids must be positive; the validation
handler in errors.py reports a falsy value (null, false, 0, "") the same as an absent one.
"""
from typing import Annotated, Any, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, StrictInt, StrictStr, field_validator

RequiredStr = Annotated[StrictStr, Field(min_length=1)]
PositiveId = Annotated[StrictInt, Field(gt=0)]


class MentorRequest(BaseModel):
    """Body of any route that may act on another mentor's credential."""

    mentorUid: Optional[StrictStr] = None

    @field_validator("mentorUid", mode="before")
    @classmethod
    def _falsy_means_caller(cls, value: Any) -> Any:
        # null, false, 0 and "" all mean "no target": act on the caller
        if value is None or value is False or value == 0 or value == "":
            return None
        return value


class StoreTokenRequest(BaseModel):
    """POST /tokens. Older clients send calComUsername instead of externalUsername."""

    apiKey: RequiredStr
    externalUsername: RequiredStr = Field(
        validation_alias=AliasChoices("externalUsername", "calComUsername"),
    )


class ListBookingsRequest(MentorRequest):
    startTime: RequiredStr
    endTime: RequiredStr


class CreateBookingRequest(MentorRequest):
    bookingRequest: dict[str, Any]


class CancelBookingRequest(MentorRequest):
    bookingId: Union[PositiveId, RequiredStr]
    reason: Optional[StrictStr] = None


class AvailabilityRequest(MentorRequest):
    dateFrom: RequiredStr
    dateTo: RequiredStr
    eventTypeId: Optional[Union[StrictInt, StrictStr]] = None
