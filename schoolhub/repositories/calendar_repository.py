"""
Calendar dataset providers.

The dataset maps BS year labels to months and days with their Gregorian
equivalents. It is either fetched from a remote endpoint or generated
from the conversion tables, and is cached for the session by
:class:`CalendarDatasetCache`.
"""

import threading
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from schoolhub.core.exceptions import OutOfRangeError, ParseError, TransientIOError
from schoolhub.core.logging import get_logger
from schoolhub.repositories.http import RestClient, json_body
from schoolhub.schemas.calendar import CalendarDataset, CalendarDay, CalendarMonth
from schoolhub.services.calendar.conversion_service import CalendarConversionService

logger = get_logger(__name__)


class CalendarDatasetProvider(Protocol):
    """Source of the BS calendar structure."""

    def load(self, timeout: Optional[float] = None) -> CalendarDataset:
        ...

    def list_years(self) -> List[str]:
        ...

    def months_for_year(self, bs_year: str) -> List[CalendarMonth]:
        ...


class _DatasetAccessMixin:
    """list_years / months_for_year on top of load()."""

    def list_years(self) -> List[str]:
        return self.load().list_years()

    def months_for_year(self, bs_year: str) -> List[CalendarMonth]:
        return self.load().months_for_year(str(bs_year))


class StaticCalendarDatasetProvider(_DatasetAccessMixin):
    """Serves a dataset that is already in memory."""

    def __init__(self, dataset: CalendarDataset):
        self.dataset = dataset

    def load(self, timeout: Optional[float] = None) -> CalendarDataset:
        return self.dataset


class GeneratedCalendarDatasetProvider(_DatasetAccessMixin):
    """
    Builds the dataset locally from the conversion tables.

    Walks every AD day from the first day of the first requested BS year
    and groups the days by their BS year and month.
    """

    def __init__(self, conversion: CalendarConversionService, years: Iterable[int]):
        self.conversion = conversion
        self.years = sorted(set(int(y) for y in years))
        self._dataset: Optional[CalendarDataset] = None

    def load(self, timeout: Optional[float] = None) -> CalendarDataset:
        if self._dataset is None:
            self._dataset = self._generate()
        return self._dataset

    def _generate(self) -> CalendarDataset:
        years: Dict[str, List[CalendarMonth]] = {}
        for year in self.years:
            try:
                months = self._generate_year(year)
            except OutOfRangeError:
                logger.warning(f"BS year {year} is outside the conversion tables; skipped")
                continue
            years[str(year)] = months
        logger.info(
            f"Generated calendar dataset for {len(years)} BS year(s)",
            extra={"years": list(years)},
        )
        return CalendarDataset(years=years)

    def _generate_year(self, year: int) -> List[CalendarMonth]:
        current = self.conversion.convert_bs_to_ad(f"{year}-01-01")
        by_month: Dict[int, List[CalendarDay]] = {}
        while True:
            try:
                bs = self.conversion.convert_ad_to_bs(current)
            except OutOfRangeError:
                break
            if bs.year != year:
                break
            by_month.setdefault(bs.month, []).append(
                CalendarDay(
                    day=bs.day,
                    en=f"{current.year}/{current.month}/{current.day}",
                    day_of_week=self.conversion.day_of_week(current),
                )
            )
            current += timedelta(days=1)
        return [CalendarMonth(month=m, days=days) for m, days in sorted(by_month.items())]


class HttpCalendarDatasetProvider(_DatasetAccessMixin):
    """Fetches the dataset from the calendar endpoint; fetched once."""

    def __init__(self, client: RestClient, path: str = ""):
        self.client = client
        self.path = path
        self._dataset: Optional[CalendarDataset] = None

    def load(self, timeout: Optional[float] = None) -> CalendarDataset:
        if self._dataset is not None:
            return self._dataset
        response = self.client.request("GET", self.path, operation="load_calendar_dataset", timeout=timeout)
        payload = json_body(response)
        if not isinstance(payload, dict):
            raise ParseError("Calendar dataset must be a JSON object keyed by BS year")
        try:
            self._dataset = CalendarDataset.from_payload(payload)
        except PydanticValidationError as e:
            raise ParseError(
                "Calendar dataset has an unexpected shape",
                errors=e.errors(include_url=False, include_context=False),
            ) from e
        return self._dataset


class CalendarDatasetCache(_DatasetAccessMixin):
    """
    Session cache in front of a provider.

    Each load takes a ticket. Invalidating the cache (for example when the
    view that requested the data goes away) moves to a new ticket, and a
    response that arrives under an old ticket is discarded instead of
    being applied.
    """

    def __init__(self, provider: CalendarDatasetProvider, timeout: Optional[float] = None):
        self.provider = provider
        self.timeout = timeout
        self._dataset: Optional[CalendarDataset] = None
        self._ticket = 0
        self._lock = threading.Lock()

    @property
    def current_ticket(self) -> int:
        return self._ticket

    def begin_load(self) -> int:
        """Start a load and return its ticket."""
        with self._lock:
            self._ticket += 1
            return self._ticket

    def complete_load(self, ticket: int, dataset: CalendarDataset) -> bool:
        """Apply a loaded dataset if its ticket is still current."""
        with self._lock:
            if ticket != self._ticket:
                logger.info(
                    "Discarding stale calendar dataset response",
                    extra={"ticket": ticket, "current_ticket": self._ticket},
                )
                return False
            self._dataset = dataset
            return True

    def invalidate(self) -> None:
        """Drop the cached dataset and orphan any in-flight load."""
        with self._lock:
            self._ticket += 1
            self._dataset = None

    def load(self, timeout: Optional[float] = None) -> CalendarDataset:
        if self._dataset is not None:
            return self._dataset
        ticket = self.begin_load()
        dataset = self.provider.load(timeout=timeout if timeout is not None else self.timeout)
        if not self.complete_load(ticket, dataset):
            if self._dataset is not None:
                return self._dataset
            raise TransientIOError(
                "Calendar dataset load was superseded",
                operation="load_calendar_dataset",
                details={"ticket": ticket},
            )
        return dataset
