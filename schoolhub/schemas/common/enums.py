"""
Enumerations shared by the calendar, leave and attendance schemas.
"""

from enum import Enum

__all__ = [
    "CalendarSystem",
    "LeaveStatus",
    "PeriodType",
    "LeaveTransition",
    "DayMarker",
]


class CalendarSystem(str, Enum):
    """Calendar systems a date string can belong to."""

    AD = "AD"
    BS = "BS"


class LeaveStatus(str, Enum):
    """Leave application status."""

    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"
    APPROVED = "approved"
    CANCELLED = "cancelled"


class PeriodType(str, Enum):
    """How a leave application's dates are expressed."""

    SINGLE_DAY = "singleDay"
    HALF_DAY = "halfDay"
    DATE_RANGE = "dateRange"


class LeaveTransition(str, Enum):
    """Actions that move a leave entry between statuses."""

    VALIDATE = "validate"
    REJECT = "reject"
    APPROVE = "approve"
    CANCEL = "cancel"


class DayMarker(str, Enum):
    """Classification badges for a rendered calendar day."""

    ORDINARY = "ordinary"
    TODAY = "today"
    ABSENT = "absent"
    APPROVED_LEAVE = "approvedLeave"
