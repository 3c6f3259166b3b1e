"""
Calendar schemas.

Bikram Sambat dates and the externally served calendar dataset
(years -> months -> days with Gregorian equivalents).
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import ConfigDict, Field, computed_field, field_validator

from schoolhub.schemas.common.base import BaseSchema
from schoolhub.utils.date_utils import format_date_parts, normalize_ad_date, split_date_string

__all__ = [
    "BS_MONTH_NAMES",
    "BSDate",
    "CalendarDay",
    "CalendarMonth",
    "CalendarDataset",
]

BS_MONTH_NAMES = (
    "Baisakh",
    "Jestha",
    "Ashadh",
    "Shrawan",
    "Bhadra",
    "Ashwin",
    "Kartik",
    "Mangsir",
    "Poush",
    "Magh",
    "Falgun",
    "Chaitra",
)


class BSDate(BaseSchema):
    """
    A Bikram Sambat calendar date.

    Only the shape is validated here; whether the day exists in a given
    month is decided by the conversion service.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    year: int = Field(..., description="BS year")
    month: int = Field(..., description="BS month (1-12)")
    day: int = Field(..., description="BS day of month")

    @classmethod
    def parse(cls, value: str) -> "BSDate":
        """Build from ``YYYY-MM-DD`` or ``YYYY/M/D``."""
        year, month, day = split_date_string(value, calendar="BS")
        return cls(year=year, month=month, day=day)

    def as_tuple(self):
        return (self.year, self.month, self.day)

    def __str__(self) -> str:
        return format_date_parts(self.year, self.month, self.day)

    def __lt__(self, other: "BSDate") -> bool:
        return self.as_tuple() < other.as_tuple()

    def __le__(self, other: "BSDate") -> bool:
        return self.as_tuple() <= other.as_tuple()


class CalendarDay(BaseSchema):
    """One day of a BS month as served by the calendar dataset."""

    day: int = Field(..., ge=1, le=32, description="BS day number")
    en: str = Field(..., description="Gregorian equivalent, YYYY/M/D")
    day_of_week: int = Field(
        ...,
        alias="dayOfWeek",
        ge=1,
        le=7,
        description="1 = Sunday ... 7 = Saturday",
    )
    tithi: Optional[str] = Field(None, description="Lunar day label")
    event: Optional[str] = Field(None, description="Festival name")

    @computed_field
    @property
    def ad_date(self) -> str:
        """Gregorian equivalent normalized to YYYY-MM-DD."""
        return normalize_ad_date(self.en)


class CalendarMonth(BaseSchema):
    """A BS month and its days in order."""

    month: int = Field(..., ge=1, le=12, description="BS month number")
    days: List[CalendarDay] = Field(default_factory=list)

    @computed_field
    @property
    def name(self) -> str:
        return BS_MONTH_NAMES[self.month - 1]

    @property
    def ad_start(self) -> Optional[str]:
        return self.days[0].ad_date if self.days else None

    @property
    def ad_end(self) -> Optional[str]:
        return self.days[-1].ad_date if self.days else None


class CalendarDataset(BaseSchema):
    """
    The whole calendar dataset keyed by BS year label.

    The wire form is a bare JSON object ``{"2081": [{month, days}, ...]}``;
    use :meth:`from_payload` / :meth:`to_payload` to cross that boundary.
    """

    years: Dict[str, List[CalendarMonth]] = Field(default_factory=dict)

    @field_validator("years")
    @classmethod
    def sort_months(cls, v: Dict[str, List[CalendarMonth]]) -> Dict[str, List[CalendarMonth]]:
        """Months are kept in chronological order within a year."""
        return {year: sorted(months, key=lambda m: m.month) for year, months in v.items()}

    @classmethod
    def from_payload(cls, payload: Dict[str, list]) -> "CalendarDataset":
        return cls(years=payload)

    def to_payload(self) -> Dict[str, list]:
        return {
            year: [
                {
                    "month": m.month,
                    "days": [d.model_dump(by_alias=True, exclude_none=True, exclude={"ad_date"}) for d in m.days],
                }
                for m in months
            ]
            for year, months in self.years.items()
        }

    def list_years(self) -> List[str]:
        """Year labels in ascending numeric order."""
        return sorted(self.years.keys(), key=int)

    def months_for_year(self, year: str) -> List[CalendarMonth]:
        return list(self.years.get(str(year), []))

    def get_month(self, year: str, month: int) -> Optional[CalendarMonth]:
        for m in self.years.get(str(year), []):
            if m.month == month:
                return m
        return None

    def is_empty(self) -> bool:
        return not any(self.years.values())
