"""
Tests for the weekly timetable grid
"""
from utils.schedule import ScheduleSlot
from utils.timetable import build_timetable, timetable_rows
from utils.transformers import Enrollment


def course(code, *slots):
    return Enrollment(
        enrollment_id=None, id=code, subject_code=code, subject_name=code,
        schedule=tuple(ScheduleSlot(d, s, e) for d, s, e in slots),
    )


class TestBuildTimetable:
    """Test grid placement"""

    def test_shape(self):
        grid = build_timetable([])
        assert list(grid.columns) == ["월", "화", "수", "목", "금"]
        assert list(grid.index) == list(range(9, 19))

    def test_slot_covers_every_overlapping_hour(self):
        grid = build_timetable([course("CS101", (1, "09:00:00", "10:30:00"))])

        assert grid.at[9, "월"] == "CS101"
        assert grid.at[10, "월"] == "CS101"
        assert grid.at[11, "월"] == ""
        assert grid.at[9, "화"] == ""

    def test_overlapping_courses_share_a_cell(self):
        grid = build_timetable([
            course("A", (3, "13:00:00", "14:00:00")),
            course("B", (3, "13:30:00", "14:30:00")),
        ])
        assert grid.at[13, "수"] == "A / B"
        assert grid.at[14, "수"] == "B"

    def test_weekend_and_unknown_days_are_skipped(self):
        grid = build_timetable([course("X", (6, "09:00:00", "10:00:00"), (None, "09:00:00", "10:00:00"))])
        assert (grid == "").all().all()

    def test_rows_for_templates(self):
        rows = timetable_rows(build_timetable([course("CS101", (5, "17:00:00", "18:00:00"))]))

        assert rows[0]["hour"] == "09:00"
        assert rows[-1]["hour"] == "18:00"
        assert rows[8]["cells"] == ["", "", "", "", "CS101"]
