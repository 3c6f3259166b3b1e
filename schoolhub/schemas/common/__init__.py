from schoolhub.schemas.common.base import BaseSchema, DocumentSchema
from schoolhub.schemas.common.enums import (
    CalendarSystem,
    DayMarker,
    LeaveStatus,
    LeaveTransition,
    PeriodType,
)

__all__ = [
    "BaseSchema",
    "DocumentSchema",
    "CalendarSystem",
    "DayMarker",
    "LeaveStatus",
    "LeaveTransition",
    "PeriodType",
]
