"""
Leave record codec.

Each leave entry is stored as one JSON string in the student document's
``leave`` array. Decoding is tolerant of records written by older
clients (``today``/``tomorrow``/``half day`` period labels) and a record
that cannot be decoded never prevents the rest of the collection from
being read.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from schoolhub.core.exceptions import ParseError
from schoolhub.core.logging import get_logger
from schoolhub.schemas.common.enums import PeriodType
from schoolhub.schemas.leave import LeaveEntry, leave_entry_adapter
from schoolhub.utils.date_utils import UTC

logger = get_logger(__name__)

LEGACY_PERIOD_TYPES: Dict[str, str] = {
    "today": PeriodType.SINGLE_DAY.value,
    "tomorrow": PeriodType.SINGLE_DAY.value,
    "single day": PeriodType.SINGLE_DAY.value,
    "half day": PeriodType.HALF_DAY.value,
    "halfday": PeriodType.HALF_DAY.value,
    "date range": PeriodType.DATE_RANGE.value,
}


@dataclass
class DecodedCollection:
    """Outcome of decoding a whole leave array."""

    entries: List[LeaveEntry] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.invalid)


def applied_at_key(entry: LeaveEntry) -> datetime:
    """Sort key on appliedAt; naive timestamps are read as UTC."""
    applied = entry.applied_at
    if applied.tzinfo is None:
        applied = applied.replace(tzinfo=UTC)
    return applied


class LeaveRecordCodec:
    """Encode and decode persisted leave records."""

    def encode(self, entry: LeaveEntry) -> str:
        """Serialize an entry with its canonical camelCase keys."""
        return entry.model_dump_json(by_alias=True, exclude_none=True)

    def decode(self, raw: str) -> LeaveEntry:
        """
        Parse one persisted record.

        Raises:
            ParseError: if the string is not a valid leave record
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ParseError("Leave record is not valid JSON", raw=raw) from e

        if not isinstance(data, dict):
            raise ParseError("Leave record must be a JSON object", raw=raw)

        data = self._upgrade_legacy(data)
        try:
            return leave_entry_adapter.validate_python(data)
        except PydanticValidationError as e:
            raise ParseError(
                "Leave record does not match any leave shape",
                raw=raw,
                errors=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e

    def decode_collection(self, raws: Optional[Iterable[str]]) -> DecodedCollection:
        """Decode every record, setting aside the ones that fail."""
        result = DecodedCollection()
        for raw in raws or []:
            try:
                result.entries.append(self.decode(raw))
            except ParseError as e:
                logger.debug(f"Skipping leave record: {e.message}")
                result.invalid.append(raw)
        result.entries.sort(key=applied_at_key, reverse=True)
        return result

    def decode_all(self, raws: Optional[Iterable[str]]) -> List[LeaveEntry]:
        """Decoded entries, newest application first; bad records are dropped."""
        return self.decode_collection(raws).entries

    def rewrite(self, raws: Iterable[str], replacement: LeaveEntry) -> List[str]:
        """
        Rebuild the persisted array with one entry replaced.

        Records keep their positions. Everything except the first record
        whose id matches ``replacement`` is written back exactly as read,
        including records that cannot be decoded. An entry with no match is
        appended.
        """
        rewritten = []
        replaced = False
        for raw in raws:
            if not replaced:
                try:
                    entry = self.decode(raw)
                except ParseError:
                    entry = None
                if entry is not None and entry.leave_id == replacement.leave_id:
                    rewritten.append(self.encode(replacement))
                    replaced = True
                    continue
            rewritten.append(raw)
        if not replaced:
            rewritten.append(self.encode(replacement))
        return rewritten

    @staticmethod
    def _upgrade_legacy(data: dict) -> dict:
        data = dict(data)
        period = data.get("periodType", data.get("period_type"))
        if isinstance(period, str):
            canonical = LEGACY_PERIOD_TYPES.get(period.strip().lower())
            if canonical:
                data.pop("period_type", None)
                data["periodType"] = canonical
        elif period is None:
            if data.get("fromDate") and data.get("toDate"):
                data["periodType"] = PeriodType.DATE_RANGE.value
            elif data.get("date"):
                data["periodType"] = PeriodType.SINGLE_DAY.value
        return data
