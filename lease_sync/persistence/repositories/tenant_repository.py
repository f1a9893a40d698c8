"""Repository for scraped tenant rows."""

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lease_sync.persistence.models.tenant import Tenant
from lease_sync.persistence.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for the tenants table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Tenant, session)

    async def list_changed_since(self, since: datetime) -> list[Tenant]:
        """Tenants created or re-scraped at or after a checkpoint.

        Args:
            since: Checkpoint timestamp (inclusive)

        Returns:
            Matching tenants, oldest created first
        """
        stmt = (
            select(Tenant)
            .where(or_(Tenant.created_at >= since, Tenant.last_scraped_at >= since))
            .order_by(Tenant.created_at.asc(), Tenant.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_with_email(self) -> list[Tenant]:
        """All tenants that have an email address, newest first."""
        stmt = (
            select(Tenant)
            .where(Tenant.tenant_email.is_not(None), Tenant.tenant_email != "")
            .order_by(Tenant.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
