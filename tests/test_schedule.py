"""
Unit tests for schedule conflict detection
"""
import pytest

from utils.schedule import (
    ScheduleSlot,
    check_multiple_schedule_conflicts,
    check_schedule_conflict,
    format_schedule_time,
    format_time,
    is_schedule_conflict,
    time_to_minutes,
)
from utils.transformers import Course


def course(course_id, *slots, name=None):
    return Course(
        id=course_id,
        subject_code=f"CS{course_id}",
        subject_name=name or f"강의{course_id}",
        credits=3,
        schedule=tuple(ScheduleSlot(day, start, end) for day, start, end in slots),
    )


class TestTimeToMinutes:
    """Test "HH:mm:ss" parsing"""

    def test_ignores_seconds(self):
        assert time_to_minutes("09:30:59") == 570

    def test_hour_only(self):
        assert time_to_minutes("10") == 600

    def test_empty_and_garbage(self):
        assert time_to_minutes("") == 0
        assert time_to_minutes(None) == 0
        assert time_to_minutes("ab:cd") == 0


class TestIsScheduleConflict:
    """Test pairwise slot overlap"""

    @pytest.mark.parametrize("day_a,day_b", [(1, 2), (3, 5), (2, 4)])
    def test_different_days_never_conflict(self, day_a, day_b):
        a = ScheduleSlot(day_a, "09:00:00", "12:00:00")
        b = ScheduleSlot(day_b, "09:00:00", "12:00:00")
        assert is_schedule_conflict(a, b) is False

    def test_touching_slots_do_not_conflict(self):
        a = ScheduleSlot(1, "09:00:00", "10:30:00")
        b = ScheduleSlot(1, "10:30:00", "12:00:00")
        assert is_schedule_conflict(a, b) is False
        assert is_schedule_conflict(b, a) is False

    def test_one_minute_overlap_conflicts(self):
        a = ScheduleSlot(1, "09:00:00", "10:31:00")
        b = ScheduleSlot(1, "10:30:00", "12:00:00")
        assert is_schedule_conflict(a, b) is True

    def test_containment_conflicts(self):
        outer = ScheduleSlot(2, "09:00:00", "13:00:00")
        inner = ScheduleSlot(2, "10:00:00", "11:00:00")
        assert is_schedule_conflict(outer, inner) is True
        assert is_schedule_conflict(inner, outer) is True


class TestCheckScheduleConflict:
    """Test new course vs. held courses"""

    def test_reports_first_conflicting_course(self):
        new = course(3, (1, "09:30:00", "10:30:00"))
        a = course(1, (1, "09:00:00", "10:00:00"))
        b = course(2, (1, "10:00:00", "11:00:00"))

        result = check_schedule_conflict(new, [a, b])

        assert result.has_conflict is True
        assert result.conflicting_course is a
        assert result.existing_schedule == a.schedule[0]
        assert result.conflicting_schedule == new.schedule[0]

    def test_course_without_schedule_never_conflicts(self):
        new = course(3)
        held = [course(1, (1, "09:00:00", "18:00:00"))]
        assert check_schedule_conflict(new, held).has_conflict is False

    def test_no_conflict(self):
        new = course(3, (2, "09:00:00", "10:00:00"))
        held = [course(1, (1, "09:00:00", "10:00:00"))]
        assert check_schedule_conflict(new, held).has_conflict is False


class TestCheckMultipleScheduleConflicts:
    """Test batch checking against a growing accepted set"""

    def test_first_of_pair_accepted_later_reported(self):
        first = course(1, (1, "09:00:00", "10:00:00"))
        second = course(2, (1, "09:30:00", "10:30:00"))

        report = check_multiple_schedule_conflicts([first, second], [])

        assert report.has_conflict is True
        assert len(report.conflicts) == 1
        assert report.conflicts[0].course is second
        assert report.conflicts[0].conflicting_course is first

    def test_rejected_course_does_not_block_later_ones(self):
        held = course(9, (1, "09:00:00", "10:00:00"))
        rejected = course(1, (1, "09:30:00", "11:00:00"))
        later = course(2, (1, "10:00:00", "11:00:00"))

        report = check_multiple_schedule_conflicts([rejected, later], [held])

        assert [c.course for c in report.conflicts] == [rejected]

    def test_clean_batch(self):
        report = check_multiple_schedule_conflicts(
            [course(1, (1, "09:00:00", "10:00:00")), course(2, (2, "09:00:00", "10:00:00"))], []
        )
        assert report.has_conflict is False


class TestFormatting:
    """Test display helpers"""

    def test_format_time(self):
        assert format_time("09:05:00") == "09:05"
        assert format_time("") == ""

    def test_format_schedule_time(self):
        slot = ScheduleSlot(1, "09:00:00", "10:30:00")
        assert format_schedule_time(slot) == "월 09:00-10:30"

    def test_unknown_day_falls_back_to_wire_name(self):
        slot = ScheduleSlot(6, "09:00:00", "10:00:00", day_name="토")
        assert format_schedule_time(slot) == "토 09:00-10:00"
