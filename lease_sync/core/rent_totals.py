"""Yearly and lifetime rent totals kept on CRM contacts."""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)

Amount = int | float


def to_decimal(value: Any) -> Decimal:
    """Coerce a rent value (number or numeric string) to Decimal, 0 if invalid."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not result.is_finite():
        return Decimal(0)
    return result


def to_number(value: Decimal) -> Amount:
    """Render a Decimal as a JSON-friendly number (int when integral)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def accumulate(
    existing_totals: dict[str, Any] | None,
    year: str,
    amount: Any,
) -> tuple[dict[str, Amount], Amount]:
    """Merge one rent observation into per-year totals.

    The input map is not mutated.

    Args:
        existing_totals: Current {year: amount} map (may be empty)
        year: Four digit year of the observation
        amount: Rent amount for the observation

    Returns:
        Tuple of (updated totals, lifetime total)
    """
    totals = {str(k): to_decimal(v) for k, v in (existing_totals or {}).items()}
    totals[year] = totals.get(year, Decimal(0)) + to_decimal(amount)
    lifetime = sum(totals.values(), Decimal(0))
    return {k: to_number(v) for k, v in totals.items()}, to_number(lifetime)


def parse_yearly_totals(raw: Any) -> dict[str, Any]:
    """Parse the stored yearly totals custom field, defaulting to empty."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Error parsing yearly rent totals {raw!r}: {e}")
        return {}
    if not isinstance(parsed, dict):
        logger.error(f"Yearly rent totals is not an object: {raw!r}")
        return {}
    return parsed


def serialize_yearly_totals(totals: dict[str, Amount]) -> str:
    """Serialize yearly totals for storage in a contact custom field."""
    return json.dumps(totals, separators=(",", ":"))
