"""Game settings schemas."""
from pydantic import Field, conint, constr

from mindbattle.schemas.base import BaseSchema


class PaymentGatewaySettings(BaseSchema):
    api_key: str
    bank_details: str
    security_token: str


class GameSettingsSchema(BaseSchema):
    """Global game and payment settings editable from the admin panel."""

    prize_amounts: list[conint(gt=0)] = Field(min_length=1)
    categories: list[constr(min_length=1)] = Field(min_length=1)
    payment_gateway_settings: PaymentGatewaySettings
    time_per_question: conint(gt=0)
