"""
Leave entry schemas.

A leave entry is persisted as one JSON string inside the student
document's ``leave`` array. The three shapes are told apart by
``periodType``: single and half day entries carry one BS ``date``,
date range entries carry ``fromDate``/``toDate``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, TypeAdapter, field_validator

from schoolhub.core.exceptions import InvalidFormatError
from schoolhub.schemas.common.base import DocumentSchema
from schoolhub.schemas.common.enums import LeaveStatus, PeriodType
from schoolhub.utils.date_utils import normalize_date_string

__all__ = [
    "LeaveEntryBase",
    "SingleDayLeave",
    "HalfDayLeave",
    "DateRangeLeave",
    "LeaveEntry",
    "leave_entry_adapter",
]


def _normalize_bs(value: str) -> str:
    try:
        return normalize_date_string(value, calendar="BS")
    except InvalidFormatError as e:
        raise ValueError(e.message) from e


class LeaveEntryBase(DocumentSchema):
    """Fields shared by every leave entry shape."""

    # Unknown keys written by other clients survive a rewrite.
    model_config = ConfigDict(extra="allow")

    leave_id: str = Field(..., min_length=1, description="Unique within one student")
    title: str = Field(default="", description="Short title")
    reason: str = Field(default="", description="Applicant's reason")
    applied_at: datetime = Field(..., description="When the student applied (AD)")
    status: LeaveStatus = Field(default=LeaveStatus.PENDING)

    validated_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    @property
    def is_approved(self) -> bool:
        return self.status == LeaveStatus.APPROVED


class _SingleDateMixin(LeaveEntryBase):
    date: str = Field(..., description="BS date, YYYY-MM-DD")
    ad_date: Optional[str] = Field(None, description="AD equivalent of date")

    @field_validator("date")
    @classmethod
    def normalize_bs_date(cls, v: str) -> str:
        return _normalize_bs(v)

    def bs_dates(self) -> List[str]:
        """The single BS date."""
        return [self.date]

    def ad_dates(self) -> List[Optional[str]]:
        """Stored AD equivalents in the same order as :meth:`bs_dates`."""
        return [self.ad_date]


class SingleDayLeave(_SingleDateMixin):
    """A full day of leave."""

    period_type: Literal["singleDay"] = PeriodType.SINGLE_DAY.value


class HalfDayLeave(_SingleDateMixin):
    """Half a day of leave; reconciled like a full day."""

    period_type: Literal["halfDay"] = PeriodType.HALF_DAY.value


class DateRangeLeave(LeaveEntryBase):
    """Leave over an inclusive range of BS dates."""

    period_type: Literal["dateRange"] = PeriodType.DATE_RANGE.value
    from_date: str = Field(..., description="First BS date, YYYY-MM-DD")
    to_date: str = Field(..., description="Last BS date, YYYY-MM-DD")
    ad_from_date: Optional[str] = None
    ad_to_date: Optional[str] = None

    @field_validator("from_date", "to_date")
    @classmethod
    def normalize_bs_date(cls, v: str) -> str:
        return _normalize_bs(v)

    def bs_dates(self) -> List[str]:
        """The range endpoints, first then last."""
        return [self.from_date, self.to_date]

    def ad_dates(self) -> List[Optional[str]]:
        """Stored AD equivalents in the same order as :meth:`bs_dates`."""
        return [self.ad_from_date, self.ad_to_date]


LeaveEntry = Annotated[
    Union[SingleDayLeave, HalfDayLeave, DateRangeLeave],
    Field(discriminator="period_type"),
]

leave_entry_adapter: TypeAdapter[LeaveEntry] = TypeAdapter(LeaveEntry)
