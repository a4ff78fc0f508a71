"""Administrator audit log."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbattle.models.audit_log import AuditLog
from mindbattle.models.base import AuditLogAction
from mindbattle.models.user import User
from mindbattle.utils import generate_id

logger = logging.getLogger(__name__)


class AuditService:
    """Records and lists administrator actions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        admin: User,
        action: AuditLogAction,
        details: str,
        auto_commit: bool = False,
    ) -> AuditLog:
        """Append an audit entry. By default the caller's transaction commits it."""
        entry = AuditLog(
            log_id=generate_id("log"),
            admin_email=admin.email,
            admin_name=admin.name,
            action=action.value,
            details=details,
        )
        self.db.add(entry)
        if auto_commit:
            await self.db.commit()
        logger.info(f"Audit: {admin.email} {action.value} - {details}")
        return entry

    async def list_entries(self, limit: int = 200) -> list[AuditLog]:
        """Newest entries first."""
        result = await self.db.execute(
            select(AuditLog).order_by(AuditLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
