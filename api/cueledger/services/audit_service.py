from typing import Any
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.models.admin_log import AdminLog


class AuditService:
    """Append-only admin log. Writes join the caller's transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        admin_id: str,
        action: str,
        target_type: str,
        target_id: str,
        details: dict[str, Any] | None = None,
    ) -> AdminLog:
        """Record an admin action. Errors propagate so the action rolls back with it."""
        entry = AdminLog(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=str(target_id),
            details=details or {},
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def get_logs(
        self,
        admin_id: str | None = None,
        action: str | None = None,
        target_type: str | None = None,
        target_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AdminLog], int]:
        """Filtered admin log entries, newest first, with the total count."""
        query = select(AdminLog)
        if admin_id:
            query = query.where(AdminLog.admin_id == admin_id)
        if action:
            query = query.where(AdminLog.action == action)
        if target_type:
            query = query.where(AdminLog.target_type == target_type)
        if target_id:
            query = query.where(AdminLog.target_id == target_id)

        total = await self.db.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.db.execute(
            query.order_by(desc(AdminLog.created_at), desc(AdminLog.id))
            .limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total or 0
