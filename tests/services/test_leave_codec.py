"""
Unit Tests for the leave record codec
Tests for: decoding shapes, legacy labels, resilience, rewriting
"""
import json

import pytest

from schoolhub.core.exceptions import ParseError
from schoolhub.schemas.common.enums import LeaveStatus, PeriodType
from schoolhub.schemas.leave import DateRangeLeave, HalfDayLeave, SingleDayLeave
from tests.factories import encoded, leave_record


class TestDecode:
    """Test decoding single records"""

    def test_single_day(self, codec):
        """Test a single day record"""
        entry = codec.decode(json.dumps(leave_record("L1")))
        assert isinstance(entry, SingleDayLeave)
        assert entry.leave_id == "L1"
        assert entry.date == "2081-01-05"
        assert entry.status == LeaveStatus.PENDING

    def test_date_range(self, codec):
        """Test a date range record"""
        entry = codec.decode(json.dumps(leave_record("L2", period_type="dateRange")))
        assert isinstance(entry, DateRangeLeave)
        assert entry.bs_dates() == ["2081-01-05", "2081-01-07"]

    @pytest.mark.parametrize("label,expected", [
        ("today", SingleDayLeave),
        ("tomorrow", SingleDayLeave),
        ("half day", HalfDayLeave),
        ("halfDay", HalfDayLeave),
    ])
    def test_legacy_labels(self, codec, label, expected):
        """Test labels written by older clients"""
        entry = codec.decode(json.dumps(leave_record("L3", period_type=label)))
        assert isinstance(entry, expected)

    def test_missing_period_type_inferred(self, codec):
        """Test records without periodType are inferred from their dates"""
        record = leave_record("L4", period_type="dateRange")
        del record["periodType"]
        assert isinstance(codec.decode(json.dumps(record)), DateRangeLeave)

    def test_unpadded_bs_dates_normalized(self, codec):
        """Test BS dates are stored zero padded"""
        entry = codec.decode(json.dumps(leave_record("L5", date="2081/1/5")))
        assert entry.date == "2081-01-05"

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2]",
        json.dumps({"leaveId": "X"}),
        json.dumps(leave_record("L6", status="archived")),
        json.dumps(leave_record("L7", period_type="fortnight")),
        json.dumps(leave_record("L8", date="soon")),
    ])
    def test_malformed_records_raise_parse_error(self, codec, raw):
        """Test every malformed shape raises ParseError"""
        with pytest.raises(ParseError):
            codec.decode(raw)


class TestEncode:
    """Test encoding"""

    def test_canonical_label_and_camel_case(self, codec):
        """Test encode writes camelCase keys and the canonical label"""
        entry = codec.decode(json.dumps(leave_record("L1", period_type="today")))
        data = json.loads(codec.encode(entry))
        assert data["periodType"] == PeriodType.SINGLE_DAY.value
        assert data["leaveId"] == "L1"
        assert "appliedAt" in data
        assert "rejectionReason" not in data

    def test_unknown_keys_survive(self, codec):
        """Test keys this codec does not know are written back"""
        entry = codec.decode(json.dumps(leave_record("L1", attachmentId="file-9")))
        assert json.loads(codec.encode(entry))["attachmentId"] == "file-9"


class TestDecodeAll:
    """Test batch decoding"""

    def test_sorted_newest_first_and_corrupt_dropped(self, codec):
        """Test ordering by appliedAt and silent dropping"""
        raws = encoded(
            leave_record("old", applied_at="2024-04-01T00:00:00Z"),
            leave_record("new", applied_at="2024-04-12T00:00:00Z"),
        ) + ["{broken"] + encoded(leave_record("mid", applied_at="2024-04-05T00:00:00Z"))
        entries = codec.decode_all(raws)
        assert [e.leave_id for e in entries] == ["new", "mid", "old"]

    def test_mixed_naive_and_aware_timestamps(self, codec):
        """Test naive timestamps sort as UTC"""
        raws = encoded(
            leave_record("naive", applied_at="2024-04-02T00:00:00"),
            leave_record("aware", applied_at="2024-04-01T00:00:00Z"),
        )
        assert [e.leave_id for e in codec.decode_all(raws)] == ["naive", "aware"]

    def test_kept_subset_stable_under_reencode(self, codec):
        """Test re-encoding the kept records decodes to the same entries"""
        raws = encoded(
            leave_record("a", applied_at="2024-04-03T00:00:00Z"),
            leave_record("b", period_type="dateRange", applied_at="2024-04-02T00:00:00Z"),
        ) + ["garbage", json.dumps({"leaveId": 3})]
        kept = codec.decode_all(raws)
        again = codec.decode_all([codec.encode(e) for e in kept])
        assert again == kept

    def test_none_is_empty(self, codec):
        """Test a missing collection"""
        assert codec.decode_all(None) == []

    def test_collection_reports_invalid(self, codec):
        """Test decode_collection keeps the raw strings it could not read"""
        result = codec.decode_collection(["{bad"] + encoded(leave_record("a")))
        assert result.dropped_count == 1
        assert result.invalid == ["{bad"]


class TestRewrite:
    """Test whole-array rewrites"""

    def test_only_target_record_changes(self, codec):
        """Test untouched and unreadable records are written back verbatim"""
        raws = encoded(leave_record("a"), leave_record("b")) + ["{corrupt"]
        target = codec.decode(raws[1]).model_copy(update={"status": LeaveStatus.VALIDATED})

        rewritten = codec.rewrite(raws, target)

        assert rewritten[0] == raws[0]
        assert rewritten[2] == "{corrupt"
        assert codec.decode(rewritten[1]).status == LeaveStatus.VALIDATED
        assert len(rewritten) == 3
