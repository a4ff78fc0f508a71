"""Base schemas with common configuration."""
from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from mindbattle.utils.datetime_helpers import ensure_utc, from_epoch_ms, to_epoch_ms


def _coerce_epoch_ms(value: Any) -> Any:
    """Accept epoch milliseconds wherever a timestamp is expected."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return from_epoch_ms(value)
    return value


# Timestamps travel as epoch milliseconds and are held as UTC-aware datetimes.
EpochMs = Annotated[
    datetime,
    BeforeValidator(_coerce_epoch_ms),
    AfterValidator(ensure_utc),
    PlainSerializer(to_epoch_ms, return_type=int, when_used="json"),
]


class BaseSchema(BaseModel):
    """Base schema with common configuration for all API payloads.

    Field names are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FrozenSchema(BaseSchema):
    """Immutable value object; derive changed copies with ``model_copy``."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class MessageResponse(BaseSchema):
    """Generic acknowledgement response."""
    success: bool = True
    message: str
