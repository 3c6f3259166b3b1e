"""
Unit Tests for attendance reconciliation
Tests for: approved leave expansion, grid markers, monthly reports
"""
from datetime import date, timedelta

from schoolhub.schemas.attendance import GridCell
from schoolhub.schemas.calendar import CalendarMonth
from schoolhub.schemas.common.enums import DayMarker
from tests.factories import encoded, leave_record, make_student


def decode(codec, *records):
    return codec.decode_all(encoded(*records))


def april_2024_month(conversion):
    """A month whose days are exactly 1-30 April 2024."""
    days = []
    for offset in range(30):
        ad = date(2024, 4, 1) + timedelta(days=offset)
        days.append({
            "day": offset + 1,
            "en": f"{ad.year}/{ad.month}/{ad.day}",
            "dayOfWeek": conversion.day_of_week(ad),
        })
    return CalendarMonth(month=12, days=days)


class TestExpandApprovedLeaveDates:
    """Test the AD day set built from approved leave"""

    def test_ignores_entries_not_approved(self, reconciler, codec):
        """Test mixed statuses; only approved entries count"""
        entries = decode(
            codec,
            leave_record("a", status="approved", date="2081-01-05"),
            leave_record("p", status="pending", date="2081-01-10"),
            leave_record("v", status="validated", date="2081-01-11"),
            leave_record("r", status="rejected", date="2081-01-12"),
            leave_record("c", status="cancelled", date="2081-01-13"),
        )
        assert reconciler.expand_approved_leave_dates(entries) == {"2024-04-17"}

    def test_union_of_single_and_range(self, reconciler, codec):
        """Test ranges expand inclusively and overlapping days merge"""
        entries = decode(
            codec,
            leave_record("r", status="approved", period_type="dateRange", fromDate="2081-01-05", toDate="2081-01-07"),
            leave_record("s", status="approved", date="2081-01-06"),
            leave_record("h", status="approved", period_type="halfDay", date="2081-01-10"),
        )
        assert reconciler.expand_approved_leave_dates(entries) == {
            "2024-04-17", "2024-04-18", "2024-04-19", "2024-04-22",
        }

    def test_unconvertible_entry_dropped_alone(self, reconciler, codec):
        """Test one bad entry does not hide the others"""
        entries = decode(
            codec,
            leave_record("bad", status="approved", date="2081-13-01"),
            leave_record("far", status="approved", date="2300-01-01"),
            leave_record("ok", status="approved", date="2081-01-05"),
        )
        assert reconciler.expand_approved_leave_dates(entries) == {"2024-04-17"}

    def test_reversed_range_contributes_nothing(self, reconciler, codec):
        """Test a range whose end precedes its start"""
        entries = decode(
            codec,
            leave_record("x", status="approved", period_type="dateRange", fromDate="2081-01-07", toDate="2081-01-05"),
        )
        assert reconciler.expand_approved_leave_dates(entries) == set()

    def test_stored_ad_dates_preferred(self, reconciler, codec):
        """Test AD copies written at transition time are used"""
        entries = decode(
            codec,
            leave_record("s", status="approved", date="2081-01-05", adDate="2024-04-17"),
            leave_record(
                "r", status="approved", period_type="dateRange",
                fromDate="2081-01-20", toDate="2081-01-21",
                adFromDate="2024/5/2", adToDate="2024/5/3",
            ),
        )
        assert reconciler.expand_approved_leave_dates(entries) == {
            "2024-04-17", "2024-05-02", "2024-05-03",
        }

    def test_entry_days_mix_stored_and_converted(self, reconciler, codec):
        """Test a range with one stored endpoint and a half day entry"""
        ranged, half = decode(
            codec,
            leave_record(
                "r", status="approved", period_type="dateRange",
                fromDate="2081-01-05", toDate="2081-01-07", adFromDate="2024-04-17",
                applied_at="2024-04-11T00:00:00Z",
            ),
            leave_record("h", status="approved", period_type="halfDay", date="2081-01-06"),
        )
        assert reconciler.entry_ad_days(ranged) == ["2024-04-17", "2024-04-18", "2024-04-19"]
        assert reconciler.entry_ad_days(half) == ["2024-04-18"]

    def test_approved_entries_of_student(self, reconciler):
        """Test decoding a student's approved entries"""
        student = make_student(leave=encoded(
            leave_record("a", status="approved"),
            leave_record("p", status="pending"),
        ) + ["{corrupt"])
        assert [e.leave_id for e in reconciler.approved_entries(student)] == ["a"]


class TestRenderGrid:
    """Test day classification"""

    def test_absent_and_leave_on_same_day(self, reconciler, codec, conversion, generated_dataset):
        """Test a day carries both badges"""
        leave_bs = conversion.ad_to_bs_string("2024-04-18")
        entries = decode(codec, leave_record("a", status="approved", date=leave_bs))
        baisakh = generated_dataset.get_month("2081", 1)

        grid = reconciler.render_grid(2081, baisakh, ["2024-04-18"], entries, today="2024-04-20")

        cell = next(c for c in grid.cells if c.ad_date == "2024-04-18")
        assert cell.is_absent and cell.is_on_leave
        assert cell.markers == [DayMarker.ABSENT, DayMarker.APPROVED_LEAVE]
        today = next(c for c in grid.cells if c.ad_date == "2024-04-20")
        assert today.markers == [DayMarker.TODAY]
        ordinary = next(c for c in grid.cells if c.ad_date == "2024-04-25")
        assert ordinary.markers == [DayMarker.ORDINARY]

    def test_grid_layout(self, reconciler, generated_dataset):
        """Test cells follow the dataset and the first week is padded"""
        baisakh = generated_dataset.get_month("2081", 1)
        grid = reconciler.render_grid(2081, baisakh, [], [], today="2024-04-20")
        assert grid.month_name == "Baisakh"
        assert len(grid.cells) == len(baisakh.days)
        assert grid.cells[0].bs_date == "2081-01-01"
        assert grid.cells[0].ad_date == "2024-04-13"
        # 13 April 2024 is a Saturday
        assert grid.leading_blanks == 6

    def test_today_defaults_to_clock(self, reconciler, generated_dataset):
        """Test today is taken from the service clock"""
        baisakh = generated_dataset.get_month("2081", 1)
        grid = reconciler.render_grid(2081, baisakh, [], [])
        assert [c.ad_date for c in grid.cells if c.is_today] == ["2024-04-20"]


class TestMonthlyReport:
    """Test the per-month detail report"""

    def test_excludes_leave_outside_visible_range(self, reconciler, codec, conversion):
        """Test an approved entry mapping to 2 May is left out of April"""
        may_second = conversion.ad_to_bs_string("2024-05-02")
        april_tenth = conversion.ad_to_bs_string("2024-04-10")
        entries = decode(
            codec,
            leave_record("may", status="approved", date=may_second),
            leave_record("apr", status="approved", date=april_tenth),
        )
        month = april_2024_month(conversion)

        report = reconciler.monthly_report(2080, month, [], entries)

        assert report.ad_start == "2024-04-01"
        assert report.ad_end == "2024-04-30"
        assert [item.leave_id for item in report.leaves] == ["apr"]

    def test_absences_and_range_clipped_to_month(self, reconciler, codec, generated_dataset):
        """Test absences convert to BS and ranges are cut at the month edge"""
        baisakh = generated_dataset.get_month("2081", 1)
        entries = decode(
            codec,
            leave_record(
                "r", status="approved", period_type="dateRange",
                fromDate="2080-12-29", toDate="2081-01-02", title="Holiday",
            ),
            leave_record("p", status="pending", date="2081-01-03"),
        )

        report = reconciler.monthly_report(
            2081, baisakh, ["2024-04-18T00:00:00.000Z", "2024-04-10", "garbage"], entries
        )

        assert report.month_name == "Baisakh"
        assert report.ad_start == "2024-04-13"
        assert report.ad_end == baisakh.ad_end
        assert report.absent_dates_ad == ["2024-04-18"]
        assert report.absent_dates_bs == ["2081-01-06"]
        assert report.dropped_absences == 1
        assert len(report.leaves) == 1
        assert report.leaves[0].title == "Holiday"
        assert report.leaves[0].dates_bs == ["2081-01-01", "2081-01-02"]
        assert report.absent_count == 1
        assert report.leave_day_count == 2


class TestGridCell:
    """Test marker derivation"""

    def test_all_flags(self):
        """Test every badge at once"""
        cell = GridCell(
            bs_day=1, bs_date="2081-01-01", ad_date="2024-04-13", day_of_week=7,
            is_today=True, is_absent=True, is_on_leave=True,
        )
        assert cell.markers == [DayMarker.TODAY, DayMarker.ABSENT, DayMarker.APPROVED_LEAVE]
