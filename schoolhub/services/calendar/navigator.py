"""
Month view navigation over the calendar dataset.
"""

from datetime import date
from typing import List, Optional, Tuple

from schoolhub.core.exceptions import ResourceNotFoundError
from schoolhub.core.logging import get_logger
from schoolhub.repositories.calendar_repository import CalendarDatasetProvider
from schoolhub.schemas.calendar import BS_MONTH_NAMES, CalendarMonth
from schoolhub.utils.date_utils import DateLike, normalize_ad_date, parse_ad_date

logger = get_logger(__name__)

MonthKey = Tuple[str, int]


class CalendarNavigator:
    """
    Holds the visible (BS year, month) and moves it around.

    Moves only succeed when the target month exists in the dataset, since
    years in the dataset do not always carry all twelve months.
    """

    def __init__(self, provider: CalendarDatasetProvider):
        self.provider = provider
        self.year: Optional[str] = None
        self.month: Optional[int] = None

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def locate(self, ad_date: DateLike) -> Optional[MonthKey]:
        """
        Find the BS (year, month) whose days include ``ad_date``.

        The dataset has no inverse index, so every day is compared.
        """
        target = normalize_ad_date(ad_date)
        for year in self.provider.list_years():
            for month in self.provider.months_for_year(year):
                if any(day.ad_date == target for day in month.days):
                    return year, month.month
        return None

    def initial_view(self, today: DateLike) -> MonthKey:
        """
        Select the month containing ``today``.

        Falls back to the latest year's first available month.
        """
        found = self.locate(today)
        if found is None:
            years = self.provider.list_years()
            months = self.provider.months_for_year(years[-1]) if years else []
            if not months:
                raise ResourceNotFoundError("Calendar dataset", message="Calendar dataset is empty")
            found = (years[-1], months[0].month)
            logger.info(
                f"{normalize_ad_date(today)} not in calendar dataset; showing {found[0]}-{found[1]:02d}"
            )
        self.year, self.month = found
        return found

    def _has(self, year: str, month: int) -> bool:
        return any(m.month == month for m in self.provider.months_for_year(year))

    def _require_view(self) -> MonthKey:
        if self.year is None or self.month is None:
            raise ResourceNotFoundError("Visible month", message="No month selected")
        return self.year, self.month

    def visible_month(self) -> CalendarMonth:
        year, month = self._require_view()
        for m in self.provider.months_for_year(year):
            if m.month == month:
                return m
        raise ResourceNotFoundError("Calendar month", f"{year}-{month:02d}")

    @property
    def month_name(self) -> str:
        _, month = self._require_view()
        return BS_MONTH_NAMES[month - 1]

    # -------------------------------------------------------------------------
    # Movement
    # -------------------------------------------------------------------------

    def _prev_key(self) -> MonthKey:
        year, month = self._require_view()
        if month == 1:
            return str(int(year) - 1), 12
        return year, month - 1

    def _next_key(self) -> MonthKey:
        year, month = self._require_view()
        if month == 12:
            return str(int(year) + 1), 1
        return year, month + 1

    def can_go_prev(self) -> bool:
        return self._has(*self._prev_key())

    def can_go_next(self) -> bool:
        return self._has(*self._next_key())

    def go_prev(self) -> bool:
        if not self.can_go_prev():
            return False
        self.year, self.month = self._prev_key()
        return True

    def go_next(self) -> bool:
        if not self.can_go_next():
            return False
        self.year, self.month = self._next_key()
        return True

    def change_year(self, year: str) -> bool:
        """
        Switch year, keeping the month number when the new year has it.

        Otherwise the first available month of the new year is selected.
        """
        year = str(year)
        months = self.provider.months_for_year(year)
        if not months:
            return False
        if self.month is None or not any(m.month == self.month for m in months):
            self.month = months[0].month
        self.year = year
        return True

    def change_month(self, month: int) -> bool:
        year, _ = self._require_view()
        if not self._has(year, month):
            return False
        self.month = month
        return True

    def available_months(self) -> List[int]:
        year, _ = self._require_view()
        return [m.month for m in self.provider.months_for_year(year)]

    # -------------------------------------------------------------------------
    # Labels
    # -------------------------------------------------------------------------

    def gregorian_label(self) -> str:
        """Gregorian span of the visible month, e.g. ``Apr/May 2024``."""
        month = self.visible_month()
        if not month.days:
            return ""
        start = parse_ad_date(month.ad_start)
        end = parse_ad_date(month.ad_end)
        return format_gregorian_span(start, end)


def format_gregorian_span(start: date, end: date) -> str:
    if start.year == end.year:
        if start.month == end.month:
            return start.strftime("%b %Y")
        return f"{start.strftime('%b')}/{end.strftime('%b')} {start.year}"
    return f"{start.strftime('%b %Y')}/{end.strftime('%b %Y')}"
