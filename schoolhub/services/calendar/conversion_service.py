"""
Bikram Sambat <-> Gregorian date conversion.

BS month lengths follow no formula, so conversion is table driven: the
``nepali_datetime`` package ships the year boundary tables and this service
wraps it with the project's error taxonomy and date-string conventions.
All conversion methods are pure and safe to call concurrently.
"""

from datetime import date
from functools import lru_cache
from typing import List, Optional, Tuple, Union

import nepali_datetime

from schoolhub.core.exceptions import InvalidFormatError, OutOfRangeError
from schoolhub.schemas.calendar import BSDate
from schoolhub.schemas.common.enums import CalendarSystem
from schoolhub.services.base.base_service import BaseService
from schoolhub.utils.date_utils import DateLike, iter_days, local_today, parse_ad_date

BSLike = Union[str, BSDate]

# Errors the conversion tables raise for unsupported input
_TABLE_ERRORS = (ValueError, OverflowError, IndexError, KeyError)


@lru_cache(maxsize=1)
def table_bounds() -> Tuple[date, date]:
    """
    First and last AD days the conversion tables cover.

    Found by probing year by year outwards from a year known to be covered.
    """
    first_year = last_year = 2000
    while _year_supported(first_year - 1):
        first_year -= 1
    while _year_supported(last_year + 1):
        last_year += 1

    last = nepali_datetime.date(last_year, 12, 1)
    for last_day in range(32, 1, -1):
        try:
            last = nepali_datetime.date(last_year, 12, last_day)
        except _TABLE_ERRORS:
            continue
        break
    first = nepali_datetime.date(first_year, 1, 1)
    return first.to_datetime_date(), last.to_datetime_date()


def _year_supported(year: int) -> bool:
    try:
        nepali_datetime.date(year, 1, 1)
    except _TABLE_ERRORS:
        return False
    return True


class CalendarConversionService(BaseService):
    """Bidirectional conversion between the BS and AD calendars."""

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def convert_ad_to_bs(self, ad_date: DateLike) -> BSDate:
        """
        Convert a Gregorian date to its BS equivalent.

        Args:
            ad_date: ``date``/``datetime`` or an accepted AD date string

        Returns:
            The BS date

        Raises:
            InvalidFormatError: if the string is not a valid AD date
            OutOfRangeError: if the date is outside the conversion tables
        """
        ad = parse_ad_date(ad_date)
        first, last = table_bounds()
        if not first <= ad <= last:
            raise OutOfRangeError(ad.isoformat(), calendar=CalendarSystem.AD.value)
        try:
            bs = nepali_datetime.date.from_datetime_date(ad)
        except _TABLE_ERRORS as e:
            raise OutOfRangeError(ad.isoformat(), calendar=CalendarSystem.AD.value) from e
        return BSDate(year=bs.year, month=bs.month, day=bs.day)

    def convert_bs_to_ad(self, bs_date: BSLike) -> date:
        """
        Convert a BS date to its Gregorian equivalent.

        A month outside 1-12, or a day that does not exist in its month,
        is a format error. A year the tables do not cover is out of range.

        Raises:
            InvalidFormatError: if the date is malformed
            OutOfRangeError: if the year is outside the conversion tables
        """
        bs = self._coerce_bs(bs_date)
        if not 1 <= bs.month <= 12 or not 1 <= bs.day <= 32:
            raise InvalidFormatError(str(bs), calendar=CalendarSystem.BS.value)

        try:
            nepali_datetime.date(bs.year, bs.month, 1)
        except _TABLE_ERRORS as e:
            raise OutOfRangeError(str(bs), calendar=CalendarSystem.BS.value) from e

        try:
            return nepali_datetime.date(bs.year, bs.month, bs.day).to_datetime_date()
        except _TABLE_ERRORS as e:
            raise InvalidFormatError(
                str(bs),
                message=f"Day {bs.day} does not exist in BS {bs.year}-{bs.month:02d}",
                calendar=CalendarSystem.BS.value,
            ) from e

    def bs_to_ad_string(self, bs_date: BSLike) -> str:
        """Convert a BS date to a ``YYYY-MM-DD`` AD string."""
        return self.convert_bs_to_ad(bs_date).isoformat()

    def ad_to_bs_string(self, ad_date: DateLike) -> str:
        """Convert an AD date to a ``YYYY-MM-DD`` BS string."""
        return str(self.convert_ad_to_bs(ad_date))

    def try_bs_to_ad_string(self, bs_date: BSLike) -> Optional[str]:
        """Like :meth:`bs_to_ad_string` but ``None`` when not convertible."""
        try:
            return self.bs_to_ad_string(bs_date)
        except (InvalidFormatError, OutOfRangeError):
            return None

    # -------------------------------------------------------------------------
    # Ranges
    # -------------------------------------------------------------------------

    def expand_date_range_ad(self, from_ad: DateLike, to_ad: DateLike) -> List[str]:
        """
        Every AD day from ``from_ad`` to ``to_ad`` inclusive, ascending.

        Equal endpoints give one day; a reversed range gives an empty list.
        """
        start = parse_ad_date(from_ad)
        end = parse_ad_date(to_ad)
        return [d.isoformat() for d in iter_days(start, end)]

    @staticmethod
    def day_of_week(ad_date: date) -> int:
        """Weekday numbered 1 = Sunday ... 7 = Saturday."""
        return ad_date.isoweekday() % 7 + 1

    # -------------------------------------------------------------------------
    # Today
    # -------------------------------------------------------------------------

    def today_ad(self) -> date:
        """Today's date in the configured local timezone."""
        return local_today(self.settings.calendar.LOCAL_TIMEZONE, self._now())

    def today_bs(self) -> BSDate:
        return self.convert_ad_to_bs(self.today_ad())

    def _coerce_bs(self, bs_date: BSLike) -> BSDate:
        if isinstance(bs_date, BSDate):
            return bs_date
        return BSDate.parse(bs_date)
