"""Wire payload -> client shape.

The only place where backend field names are read. Everything else in the
project consumes the dataclasses below. Missing nested objects never raise,
they fall back to empty defaults.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from utils.schedule import ScheduleSlot


COURSE_TYPE_LABELS: Dict[str, str] = {
    "MAJOR_REQ": "전공필수",
    "MAJOR_ELEC": "전공선택",
    "GEN_REQ": "교양필수",
    "GEN_ELEC": "교양선택",
}

COURSE_TYPE_CODES: Dict[str, str] = {label: code for code, label in COURSE_TYPE_LABELS.items()}


@dataclass(frozen=True)
class Course:
    id: Any
    subject_code: Optional[str] = None
    subject_name: Optional[str] = None
    professor: str = ""
    department: str = ""
    department_id: Optional[int] = None
    course_type: str = ""
    course_type_code: str = ""
    credits: Optional[int] = None
    current_students: int = 0
    max_students: int = 0
    is_full: bool = False
    schedule: Tuple[ScheduleSlot, ...] = ()
    classroom: str = ""
    is_in_cart: bool = False
    is_enrolled: bool = False
    # server-asserted, passed through untouched (may be None)
    can_enroll: Optional[bool] = None


@dataclass(frozen=True)
class CartItem:
    cart_id: Any
    id: Any
    subject_code: Optional[str] = None
    subject_name: Optional[str] = None
    professor: str = ""
    credits: int = 0
    course_type: str = ""
    schedule: Tuple[ScheduleSlot, ...] = ()
    classroom: str = ""
    current_students: int = 0
    max_students: int = 0
    is_full: bool = False
    added_at: Optional[str] = None


@dataclass(frozen=True)
class Enrollment:
    enrollment_id: Any
    id: Any
    subject_code: Optional[str] = None
    subject_name: Optional[str] = None
    professor: str = ""
    credits: int = 0
    course_type: str = ""
    schedule: Tuple[ScheduleSlot, ...] = ()
    classroom: str = ""
    can_cancel: bool = False
    current_students: int = 0
    max_students: int = 0
    is_full: bool = False

    @classmethod
    def provisional(cls, course: Any, enrollment_id: Any) -> "Enrollment":
        """Local stand-in for a just-confirmed enrollment, until the next refetch."""
        return cls(
            enrollment_id=enrollment_id,
            id=course.id,
            subject_code=course.subject_code,
            subject_name=course.subject_name,
            professor=getattr(course, "professor", "") or "",
            credits=course.credits or 0,
            course_type=getattr(course, "course_type", "") or "",
            schedule=tuple(course.schedule or ()),
            classroom=getattr(course, "classroom", "") or "",
            can_cancel=True,
            current_students=getattr(course, "current_students", 0) or 0,
            max_students=getattr(course, "max_students", 0) or 0,
            is_full=bool(getattr(course, "is_full", False)),
        )


def _obj(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _day(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def transform_schedule(raw: Any) -> Tuple[ScheduleSlot, ...]:
    if not isinstance(raw, list):
        return ()
    slots = []
    for item in raw:
        item = _obj(item)
        slots.append(
            ScheduleSlot(
                day_of_week=_day(item.get("dayOfWeek")),
                start_time=item.get("startTime") or "",
                end_time=item.get("endTime") or "",
                classroom=item.get("classroom") or "",
                day_name=item.get("dayName"),
            )
        )
    return tuple(slots)


def _first_classroom(schedule: Tuple[ScheduleSlot, ...]) -> str:
    return schedule[0].classroom if schedule else ""


def course_type_label(value: Any) -> str:
    """Code or {code, name} -> Korean label. Unknown codes pass through."""
    if isinstance(value, dict):
        return value.get("name") or COURSE_TYPE_LABELS.get(value.get("code") or "", "") or ""
    if not value:
        return ""
    return COURSE_TYPE_LABELS.get(str(value), str(value))


def course_type_code(value: Any) -> Optional[str]:
    # accepts either the label ("전공필수") or the code ("MAJOR_REQ")
    if not value:
        return None
    value = str(value)
    if value in COURSE_TYPE_LABELS:
        return value
    return COURSE_TYPE_CODES.get(value)


def transform_course_data(api_course: Dict[str, Any]) -> Course:
    enrollment = _obj(api_course.get("enrollment"))
    department = _obj(api_course.get("department"))
    course_type = _obj(api_course.get("courseType"))
    schedule = transform_schedule(api_course.get("schedule"))

    return Course(
        id=api_course.get("id"),
        subject_code=api_course.get("courseCode"),
        subject_name=api_course.get("courseName"),
        professor=_obj(api_course.get("professor")).get("name") or "",
        department=department.get("name") or "",
        department_id=department.get("id") or None,
        course_type=course_type.get("name") or "",
        course_type_code=course_type.get("code") or "",
        credits=api_course.get("credits"),
        current_students=enrollment.get("current") or 0,
        max_students=enrollment.get("max") or 0,
        is_full=bool(enrollment.get("isFull")),
        schedule=schedule,
        classroom=_first_classroom(schedule),
        is_in_cart=bool(api_course.get("isInCart")),
        is_enrolled=bool(api_course.get("isEnrolled")),
        can_enroll=api_course.get("canEnroll"),
    )


def transform_cart_data(cart_item: Dict[str, Any]) -> CartItem:
    course = _obj(cart_item.get("course"))
    enrollment = _obj(cart_item.get("enrollment"))
    schedule = transform_schedule(cart_item.get("schedule"))

    return CartItem(
        cart_id=cart_item.get("cartId"),
        id=course.get("id"),
        subject_code=course.get("code"),
        subject_name=course.get("name"),
        professor=_obj(cart_item.get("professor")).get("name") or "",
        credits=course.get("credits") or 0,
        course_type=course_type_label(course.get("courseType")),
        schedule=schedule,
        classroom=_first_classroom(schedule),
        current_students=enrollment.get("current") or 0,
        max_students=enrollment.get("max") or 0,
        is_full=bool(enrollment.get("isFull")),
        added_at=cart_item.get("addedAt"),
    )


def transform_enrollment_data(enrollment_item: Dict[str, Any]) -> Enrollment:
    course = _obj(enrollment_item.get("course"))
    schedule = transform_schedule(enrollment_item.get("schedule"))
    current = course.get("currentStudents") or 0
    maximum = course.get("maxStudents") or 0

    return Enrollment(
        enrollment_id=enrollment_item.get("enrollmentId"),
        id=course.get("id"),
        subject_code=course.get("courseCode"),
        subject_name=course.get("courseName"),
        professor=_obj(enrollment_item.get("professor")).get("name") or "",
        credits=course.get("credits") or 0,
        course_type=_obj(course.get("courseType")).get("name") or "",
        schedule=schedule,
        classroom=_first_classroom(schedule),
        can_cancel=bool(enrollment_item.get("canCancel")),
        current_students=current,
        max_students=maximum,
        is_full=bool(maximum) and current >= maximum,
    )


def transform_current_enrolled(item: Dict[str, Any]) -> Enrollment:
    """Enrollment row of the "my courses" view.

    Same shape as transform_enrollment_data, but courseType may come as a bare
    code ("MAJOR_REQ") and is translated to its label here.
    """
    enrollment = transform_enrollment_data(item)
    raw_type = _obj(item.get("course")).get("courseType")
    return replace(enrollment, course_type=course_type_label(raw_type))
