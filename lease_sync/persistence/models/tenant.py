"""Scraped tenant/lease rows (source of the sync)."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, DateTime, Index, Integer, Numeric, String

from lease_sync.persistence.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(Base):
    """One scraped tenant stay. Written by the scraper, read by the sync."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)

    # Contact info
    tenant_email = Column(String(255), nullable=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    tenant_phone = Column(JSON, nullable=True)  # list of raw phone strings (or a single string)

    # Rental metadata
    rental_address = Column(String(500), nullable=True)
    unit_number = Column(String(50), nullable=True)
    unit_owner = Column(String(255), nullable=True)
    owner_phone = Column(JSON, nullable=True)

    # Stay
    check_in_date = Column(Date, nullable=True)
    status = Column(String(50), nullable=True)
    confirmation_number = Column(String(100), nullable=True)
    rent = Column(Numeric(12, 2), nullable=True)

    # Agent that owns the tenant on the scraping side
    user_id = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_scraped_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_tenants_created_at", "created_at"),
        Index("ix_tenants_last_scraped_at", "last_scraped_at"),
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, email={self.tenant_email}, check_in={self.check_in_date})>"
