"""
Attendance grid and monthly report schemas.
"""

from typing import List, Optional

from pydantic import Field, computed_field

from schoolhub.schemas.common.base import BaseSchema
from schoolhub.schemas.common.enums import DayMarker, LeaveStatus, PeriodType

__all__ = [
    "GridCell",
    "MonthGrid",
    "ReportLeaveItem",
    "MonthlyReport",
]


class GridCell(BaseSchema):
    """
    One rendered day of the visible month.

    Absence and approved leave are independent flags, so a day can carry
    both badges at once.
    """

    bs_day: int = Field(..., ge=1, le=32)
    bs_date: str = Field(..., description="YYYY-MM-DD (BS)")
    ad_date: str = Field(..., description="YYYY-MM-DD (AD)")
    day_of_week: int = Field(..., ge=1, le=7)
    tithi: Optional[str] = None
    event: Optional[str] = None
    is_today: bool = False
    is_absent: bool = False
    is_on_leave: bool = False

    @computed_field
    @property
    def markers(self) -> List[DayMarker]:
        found = []
        if self.is_today:
            found.append(DayMarker.TODAY)
        if self.is_absent:
            found.append(DayMarker.ABSENT)
        if self.is_on_leave:
            found.append(DayMarker.APPROVED_LEAVE)
        return found or [DayMarker.ORDINARY]


class MonthGrid(BaseSchema):
    """Rendered BS month."""

    bs_year: int
    bs_month: int = Field(..., ge=1, le=12)
    month_name: str
    # Empty cells before day 1 in a Sunday-first week
    leading_blanks: int = Field(default=0, ge=0, le=6)
    cells: List[GridCell] = Field(default_factory=list)


class ReportLeaveItem(BaseSchema):
    """An approved leave entry and its BS dates inside the visible month."""

    leave_id: str
    title: str
    reason: str = ""
    period_type: PeriodType
    status: LeaveStatus = LeaveStatus.APPROVED
    dates_bs: List[str] = Field(default_factory=list)


class MonthlyReport(BaseSchema):
    """Absences and approved leave for one visible BS month."""

    bs_year: int
    bs_month: int = Field(..., ge=1, le=12)
    month_name: str
    ad_start: str
    ad_end: str
    absent_dates_ad: List[str] = Field(default_factory=list)
    absent_dates_bs: List[str] = Field(default_factory=list)
    leaves: List[ReportLeaveItem] = Field(default_factory=list)
    dropped_absences: int = Field(default=0, ge=0, description="Unparseable absence dates")

    @computed_field
    @property
    def absent_count(self) -> int:
        return len(self.absent_dates_bs)

    @computed_field
    @property
    def leave_day_count(self) -> int:
        return sum(len(item.dates_bs) for item in self.leaves)
