"""Builders for raw leave records and student aggregates."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from schoolhub.schemas.student import StudentAggregate

FIXED_NOW = datetime(2024, 4, 20, 6, 30, 0, tzinfo=timezone.utc)


def leave_record(
    leave_id: str,
    status: str = "pending",
    period_type: str = "singleDay",
    applied_at: str = "2024-04-10T08:00:00.000Z",
    **fields: Any,
) -> Dict[str, Any]:
    """Raw leave record in its stored camelCase form."""
    record: Dict[str, Any] = {
        "leaveId": leave_id,
        "title": fields.pop("title", f"Leave {leave_id}"),
        "reason": fields.pop("reason", "Family function"),
        "periodType": period_type,
        "appliedAt": applied_at,
        "status": status,
    }
    if period_type == "dateRange":
        record.setdefault("fromDate", fields.pop("fromDate", "2081-01-05"))
        record.setdefault("toDate", fields.pop("toDate", "2081-01-07"))
    else:
        record.setdefault("date", fields.pop("date", "2081-01-05"))
    record.update(fields)
    return record


def make_student(
    leave: Optional[List[str]] = None,
    absent: Optional[List[str]] = None,
    **overrides: Any,
) -> StudentAggregate:
    data = {
        "$id": "doc-1",
        "id": "STD-001",
        "name": "Sita Sharma",
        "parentId": "PAR-001",
        "facultyId": "FAC-1",
        "class": "8",
        "section": "A",
        "absent": absent or [],
        "leave": leave or [],
        "version": 0,
    }
    data.update(overrides)
    return StudentAggregate.model_validate(data)


def encoded(*records: Dict[str, Any]) -> List[str]:
    return [json.dumps(r) for r in records]
