"""Opportunity pipeline stage selection."""

from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    """Pipeline stages a synced tenant can land in."""

    NEW_INQUIRY = "new_inquiry"
    NEEDS_SEARCH = "needs_search"
    SEARCH_SENT = "search_sent"
    BOOKED_CURRENT_YEAR = "booked_current_year"
    BOOKED_NEXT_YEAR = "booked_next_year"
    PAST_GUEST = "past_guest"


@dataclass(frozen=True)
class StageIds:
    """CRM stage ids for each pipeline stage."""

    new_inquiry: str
    needs_search: str
    search_sent: str
    booked_current_year: str
    booked_next_year: str
    past_guest: str

    def for_stage(self, stage: Stage) -> str:
        """Stage id for a stage, falling back to the new inquiry stage."""
        return getattr(self, stage.value) or self.new_inquiry


def classify_stage(check_in_year: str | None, status: str | None, current_year: int) -> Stage:
    """Decide the pipeline stage for a tenant. First matching rule wins.

    Year rules take precedence over status rules, so a tenant booked for
    next year lands in BOOKED_NEXT_YEAR whatever its status.
    """
    year = int(check_in_year) if check_in_year and check_in_year.isdigit() else None

    if year == current_year + 1:
        return Stage.BOOKED_NEXT_YEAR
    if year == current_year:
        return Stage.BOOKED_CURRENT_YEAR
    if status == "needs_search":
        return Stage.NEEDS_SEARCH
    if status == "search_sent":
        return Stage.SEARCH_SENT
    if year is not None and year < current_year:
        return Stage.PAST_GUEST
    return Stage.NEW_INQUIRY


def select_stage(
    check_in_year: str | None,
    status: str | None,
    stages: StageIds,
    current_year: int,
) -> str:
    """Map a tenant's check-in year and status to a CRM stage id."""
    return stages.for_stage(classify_stage(check_in_year, status, current_year))
