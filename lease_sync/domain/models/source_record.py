"""Tenant row as read from the source database."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from lease_sync.core.rent_totals import to_decimal


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


@dataclass
class SourceRecord:
    """One row of the tenants table. Read-only to the sync."""

    id: int
    tenant_email: str = ""
    first_name: str = ""
    last_name: str = ""
    tenant_phone: str | list[str] | None = None
    rental_address: str | None = None
    unit_number: str | None = None
    unit_owner: str | None = None
    owner_phone: list[str] = field(default_factory=list)
    check_in_date: date | str | None = None
    status: str | None = None
    confirmation_number: str | None = None
    rent: Any = None
    user_id: str | None = None
    created_at: datetime | None = None
    last_scraped_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "SourceRecord":
        """Build a record from an ORM row or a plain mapping."""
        get = row.get if isinstance(row, dict) else lambda name: getattr(row, name, None)
        return cls(
            id=int(get("id")),
            tenant_email=get("tenant_email") or "",
            first_name=get("first_name") or "",
            last_name=get("last_name") or "",
            tenant_phone=get("tenant_phone"),
            rental_address=get("rental_address"),
            unit_number=get("unit_number"),
            unit_owner=get("unit_owner"),
            owner_phone=_as_list(get("owner_phone")),
            check_in_date=get("check_in_date"),
            status=get("status"),
            confirmation_number=get("confirmation_number"),
            rent=get("rent"),
            user_id=str(get("user_id")) if get("user_id") is not None else None,
            created_at=as_utc(get("created_at")),
            last_scraped_at=as_utc(get("last_scraped_at")),
        )

    @property
    def check_in_year(self) -> str | None:
        """Four digit check-in year, or None when not derivable."""
        if isinstance(self.check_in_date, (date, datetime)):
            return f"{self.check_in_date.year:04d}"
        if isinstance(self.check_in_date, str):
            year = self.check_in_date.strip()[:4]
            if len(year) == 4 and year.isdigit():
                return year
        return None

    @property
    def rent_amount(self) -> Decimal:
        """Rent as a Decimal, 0 when missing or unparseable."""
        return to_decimal(self.rent)

    @property
    def change_timestamp(self) -> datetime | None:
        """Latest of created_at and last_scraped_at."""
        stamps = [s for s in (self.created_at, self.last_scraped_at) if s is not None]
        return max(stamps) if stamps else None

    @property
    def opportunity_reference(self) -> str:
        """External reference used to find this tenant's opportunity again."""
        return self.confirmation_number or f"tenant-{self.id}"

    @property
    def opportunity_name(self) -> str:
        return self.confirmation_number or f"Tenant {self.id}"
