"""
Attendance reconciliation.

Places absence dates (stored in AD) and approved leave (stored in BS,
with AD copies on entries written since AD stamping) onto a BS month of
the calendar dataset, and summarizes one month for reports.
"""

from datetime import date
from typing import Iterable, List, Optional, Set, Tuple

from schoolhub.config.settings import Settings
from schoolhub.core.exceptions import InvalidFormatError, OutOfRangeError
from schoolhub.schemas.attendance import GridCell, MonthGrid, MonthlyReport, ReportLeaveItem
from schoolhub.schemas.calendar import BS_MONTH_NAMES, CalendarMonth
from schoolhub.schemas.leave import LeaveEntry
from schoolhub.schemas.student import StudentAggregate
from schoolhub.services.base.base_service import BaseService, Clock
from schoolhub.services.calendar.conversion_service import CalendarConversionService
from schoolhub.services.leave.leave_codec import LeaveRecordCodec
from schoolhub.utils.date_utils import DateLike, normalize_ad_date

_DATE_ERRORS = (InvalidFormatError, OutOfRangeError)


class AttendanceReconciler(BaseService):
    """Merge absences and approved leave onto calendar months."""

    def __init__(
        self,
        conversion: CalendarConversionService,
        codec: Optional[LeaveRecordCodec] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(settings, clock)
        self.conversion = conversion
        self.codec = codec or LeaveRecordCodec()

    # -------------------------------------------------------------------------
    # Leave dates
    # -------------------------------------------------------------------------

    def approved_entries(self, student: StudentAggregate) -> List[LeaveEntry]:
        """Decoded approved entries of a student."""
        return [e for e in self.codec.decode_all(student.leave) if e.is_approved]

    def entry_ad_days(self, entry: LeaveEntry) -> List[str]:
        """
        AD days covered by one entry.

        Stored AD copies are used when present and well formed; otherwise
        the BS dates are converted.

        Raises:
            InvalidFormatError: if a BS date is malformed
            OutOfRangeError: if a BS date is outside the conversion tables
        """
        endpoints = [
            self._ad_for(stored_ad, bs_value)
            for stored_ad, bs_value in zip(entry.ad_dates(), entry.bs_dates())
        ]
        return self.conversion.expand_date_range_ad(endpoints[0], endpoints[-1])

    def _ad_for(self, stored_ad: Optional[str], bs_value: str) -> str:
        if stored_ad:
            try:
                return normalize_ad_date(stored_ad)
            except InvalidFormatError:
                self._logger.debug(f"Ignoring malformed stored AD date {stored_ad!r}")
        return self.conversion.bs_to_ad_string(bs_value)

    def expand_approved_leave_dates(self, entries: Iterable[LeaveEntry]) -> Set[str]:
        """
        Union of AD days covered by approved entries.

        Entries in any other status are ignored. An entry whose dates do not
        convert is skipped on its own.
        """
        days: Set[str] = set()
        for entry in entries:
            if not entry.is_approved:
                continue
            try:
                days.update(self.entry_ad_days(entry))
            except _DATE_ERRORS as e:
                self._logger.warning(
                    f"Skipping approved leave {entry.leave_id}: {e.message}",
                    extra={"leave_id": entry.leave_id},
                )
        return days

    def normalize_absences(self, absent_dates: Iterable[str]) -> Tuple[Set[str], int]:
        """Normalized absence dates and the number that could not be read."""
        normalized: Set[str] = set()
        dropped = 0
        for value in absent_dates or []:
            try:
                normalized.add(normalize_ad_date(value))
            except InvalidFormatError:
                dropped += 1
        if dropped:
            self._logger.warning(f"{dropped} unreadable absence date(s) ignored")
        return normalized, dropped

    # -------------------------------------------------------------------------
    # Grid
    # -------------------------------------------------------------------------

    def render_grid(
        self,
        bs_year: int,
        month: CalendarMonth,
        absent_dates: Iterable[str],
        entries: Iterable[LeaveEntry],
        today: Optional[DateLike] = None,
    ) -> MonthGrid:
        """
        Classify every day of a visible month.

        A day can be absent and on approved leave at the same time; both
        flags are set and neither hides the other.
        """
        absences, _ = self.normalize_absences(absent_dates)
        leave_days = self.expand_approved_leave_dates(entries)
        today_ad = normalize_ad_date(today) if today is not None else self.conversion.today_ad().isoformat()

        cells = []
        for day in month.days:
            ad = day.ad_date
            cells.append(
                GridCell(
                    bs_day=day.day,
                    bs_date=f"{int(bs_year):04d}-{month.month:02d}-{day.day:02d}",
                    ad_date=ad,
                    day_of_week=day.day_of_week,
                    tithi=day.tithi,
                    event=day.event,
                    is_today=ad == today_ad,
                    is_absent=ad in absences,
                    is_on_leave=ad in leave_days,
                )
            )

        return MonthGrid(
            bs_year=int(bs_year),
            bs_month=month.month,
            month_name=BS_MONTH_NAMES[month.month - 1],
            leading_blanks=month.days[0].day_of_week - 1 if month.days else 0,
            cells=cells,
        )

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    def monthly_report(
        self,
        bs_year: int,
        month: CalendarMonth,
        absent_dates: Iterable[str],
        entries: Iterable[LeaveEntry],
    ) -> MonthlyReport:
        """
        Absences and approved leave falling inside a visible month.

        The month's AD boundary (first and last day, inclusive) filters
        both inputs. Absences are listed with their BS dates; each approved
        entry is listed once with its BS dates inside the month.
        """
        if not month.days:
            raise InvalidFormatError(
                f"{bs_year}-{month.month:02d}",
                message="Calendar month has no days",
                calendar="BS",
            )
        start = date.fromisoformat(month.ad_start)
        end = date.fromisoformat(month.ad_end)
        bs_by_ad = {
            day.ad_date: f"{int(bs_year):04d}-{month.month:02d}-{day.day:02d}"
            for day in month.days
        }

        absences, dropped = self.normalize_absences(absent_dates)
        absent_ad = sorted(a for a in absences if start <= date.fromisoformat(a) <= end)
        absent_bs = sorted(self._to_bs(a, bs_by_ad) for a in absent_ad)

        items = []
        for entry in entries:
            if not entry.is_approved:
                continue
            try:
                days = self.entry_ad_days(entry)
            except _DATE_ERRORS as e:
                self._logger.warning(
                    f"Leaving approved leave {entry.leave_id} out of report: {e.message}",
                    extra={"leave_id": entry.leave_id},
                )
                continue
            inside = sorted({d for d in days if start <= date.fromisoformat(d) <= end})
            if not inside:
                continue
            items.append(
                ReportLeaveItem(
                    leave_id=entry.leave_id,
                    title=entry.title,
                    reason=entry.reason,
                    period_type=entry.period_type,
                    status=entry.status,
                    dates_bs=sorted({self._to_bs(d, bs_by_ad) for d in inside}),
                )
            )

        return MonthlyReport(
            bs_year=int(bs_year),
            bs_month=month.month,
            month_name=BS_MONTH_NAMES[month.month - 1],
            ad_start=start.isoformat(),
            ad_end=end.isoformat(),
            absent_dates_ad=absent_ad,
            absent_dates_bs=absent_bs,
            leaves=items,
            dropped_absences=dropped,
        )

    def _to_bs(self, ad: str, bs_by_ad: dict) -> str:
        """BS date for an AD day, taken from the visible month when it lists it."""
        if ad in bs_by_ad:
            return bs_by_ad[ad]
        return self.conversion.ad_to_bs_string(ad)
