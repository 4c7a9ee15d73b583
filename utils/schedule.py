from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence


DAY_NAMES = {1: "월", 2: "화", 3: "수", 4: "목", 5: "금"}


@dataclass(frozen=True)
class ScheduleSlot:
    # dayOfWeek is 1 (Mon) .. 5 (Fri); times are wire strings "HH:mm:ss"
    day_of_week: Optional[int]
    start_time: str = ""
    end_time: str = ""
    classroom: str = ""
    day_name: Optional[str] = None


@dataclass(frozen=True)
class ScheduleConflict:
    has_conflict: bool
    conflicting_course: Any = None
    conflicting_schedule: Optional[ScheduleSlot] = None
    existing_schedule: Optional[ScheduleSlot] = None


@dataclass(frozen=True)
class BatchConflict:
    course: Any
    conflicting_course: Any


@dataclass(frozen=True)
class BatchConflictReport:
    conflicts: List[BatchConflict] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)


NO_CONFLICT = ScheduleConflict(has_conflict=False)


def _to_int(part: str) -> int:
    try:
        return int(part)
    except (TypeError, ValueError):
        return 0


def time_to_minutes(time_str: Optional[str]) -> int:
    """"HH:mm:ss" (or any prefix of it) -> minutes since midnight.

    Seconds are ignored; missing or non-numeric parts count as 0.
    """
    if not time_str:
        return 0
    parts = str(time_str).split(":")
    hours = _to_int(parts[0])
    minutes = _to_int(parts[1]) if len(parts) > 1 else 0
    return hours * 60 + minutes


def format_time(time_str: Optional[str]) -> str:
    if not time_str:
        return ""
    parts = str(time_str).split(":")
    hours = parts[0] or "00"
    minutes = parts[1] if len(parts) > 1 and parts[1] else "00"
    return f"{hours}:{minutes}"


def format_schedule_time(slot: Optional[ScheduleSlot]) -> str:
    # "월 09:00-10:30"
    if slot is None:
        return ""
    day_name = DAY_NAMES.get(slot.day_of_week) or slot.day_name or ""
    return f"{day_name} {format_time(slot.start_time)}-{format_time(slot.end_time)}"


def is_schedule_conflict(a: ScheduleSlot, b: ScheduleSlot) -> bool:
    if a.day_of_week != b.day_of_week:
        return False

    start_a = time_to_minutes(a.start_time)
    end_a = time_to_minutes(a.end_time)
    start_b = time_to_minutes(b.start_time)
    end_b = time_to_minutes(b.end_time)

    # half-open intervals: touching endpoints do not overlap
    return start_a < end_b and start_b < end_a


def _slots(course: Any) -> Sequence[ScheduleSlot]:
    schedule = getattr(course, "schedule", None)
    if not isinstance(schedule, (list, tuple)):
        return ()
    return schedule


def check_schedule_conflict(new_course: Any, existing_courses: Iterable[Any]) -> ScheduleConflict:
    """Return the first conflict between new_course and existing_courses.

    Scans existing courses in order and, for each one, every
    (new slot x existing slot) pair.
    """
    new_slots = _slots(new_course)
    if not new_slots:
        return NO_CONFLICT

    for existing in existing_courses:
        for new_slot in new_slots:
            for existing_slot in _slots(existing):
                if is_schedule_conflict(new_slot, existing_slot):
                    return ScheduleConflict(
                        has_conflict=True,
                        conflicting_course=existing,
                        conflicting_schedule=new_slot,
                        existing_schedule=existing_slot,
                    )

    return NO_CONFLICT


def check_multiple_schedule_conflicts(
    new_courses: Iterable[Any],
    existing_courses: Iterable[Any],
) -> BatchConflictReport:
    # Fold the batch into a growing "accepted" set. A conflicting course is
    # reported but not added, so it never blocks the courses after it.
    accepted = list(existing_courses)
    conflicts: List[BatchConflict] = []

    for course in new_courses:
        conflict = check_schedule_conflict(course, accepted)
        if conflict.has_conflict:
            conflicts.append(BatchConflict(course=course, conflicting_course=conflict.conflicting_course))
        else:
            accepted.append(course)

    return BatchConflictReport(conflicts=conflicts)
