"""Service for admin-editable game settings."""
import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.config import get_settings
from mindbattle.models.base import AuditLogAction
from mindbattle.models.game_setting import GameSetting
from mindbattle.models.user import User
from mindbattle.schemas.settings import GameSettingsSchema, PaymentGatewaySettings
from mindbattle.services.audit_service import AuditService
from mindbattle.utils import utc_now

logger = logging.getLogger(__name__)

SETTING_KEYS = ("prize_amounts", "categories", "payment_gateway_settings", "time_per_question")


def default_game_settings() -> GameSettingsSchema:
    """Game settings as configured through the environment."""
    settings = get_settings()
    return GameSettingsSchema(
        prize_amounts=list(settings.prize_amounts),
        categories=list(settings.categories),
        payment_gateway_settings=PaymentGatewaySettings(
            api_key=settings.payment_gateway_api_key,
            bank_details=settings.payment_gateway_bank_details,
            security_token=settings.payment_gateway_security_token,
        ),
        time_per_question=settings.time_per_question,
    )


class GameSettingsService:
    """Stored settings override the environment defaults key by key."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_game_settings(self) -> GameSettingsSchema:
        result = await self.db.execute(select(GameSetting).where(GameSetting.key.in_(SETTING_KEYS)))
        stored: dict[str, Any] = {row.key: json.loads(row.value) for row in result.scalars().all()}
        if not stored:
            return default_game_settings()
        values = default_game_settings().model_dump()
        values.update(stored)
        return GameSettingsSchema.model_validate(values)

    async def save_game_settings(self, admin: User, payload: GameSettingsSchema) -> GameSettingsSchema:
        values = payload.model_dump()
        result = await self.db.execute(select(GameSetting).where(GameSetting.key.in_(SETTING_KEYS)))
        existing = {row.key: row for row in result.scalars().all()}
        now = utc_now()

        for key in SETTING_KEYS:
            encoded = json.dumps(values[key])
            row = existing.get(key)
            if row is None:
                self.db.add(GameSetting(key=key, value=encoded, updated_at=now, updated_by=admin.email))
            else:
                row.value = encoded
                row.updated_at = now
                row.updated_by = admin.email

        await AuditService(self.db).record(
            admin, AuditLogAction.SETTINGS_UPDATE, "Updated game and payment settings."
        )
        await self.db.commit()
        logger.info(f"Game settings updated by {admin.email}")
        return payload
