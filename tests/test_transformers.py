"""
Unit tests for wire payload transformers
"""
from conftest import wire_course

from utils.schedule import ScheduleSlot
from utils.transformers import (
    Enrollment,
    course_type_code,
    course_type_label,
    transform_cart_data,
    transform_course_data,
    transform_current_enrolled,
    transform_enrollment_data,
    transform_schedule,
)


class TestTransformCourse:
    """Test catalog item mapping"""

    def test_maps_nested_fields(self):
        course = transform_course_data(
            wire_course(5, "CS101", "자료구조", 3, [(1, "09:00:00", "10:30:00")], current=40, maximum=40, is_full=True)
        )

        assert course.id == 5
        assert course.subject_code == "CS101"
        assert course.subject_name == "자료구조"
        assert course.professor == "김교수"
        assert course.department == "컴퓨터공학과"
        assert course.department_id == 10
        assert course.course_type == "전공필수"
        assert course.course_type_code == "MAJOR_REQ"
        assert course.current_students == 40
        assert course.max_students == 40
        assert course.is_full is True
        assert course.classroom == "공학관 101"
        assert course.schedule == (ScheduleSlot(1, "09:00:00", "10:30:00", "공학관 101"),)

    def test_missing_nested_objects_do_not_raise(self):
        course = transform_course_data({"id": 1, "courseCode": "X", "courseName": "Y"})

        assert course.professor == ""
        assert course.department_id is None
        assert course.schedule == ()
        assert course.classroom == ""
        assert course.current_students == 0
        assert course.can_enroll is None

    def test_schedule_not_a_list(self):
        assert transform_schedule(None) == ()
        assert transform_schedule({"dayOfWeek": 1}) == ()


class TestTransformCart:
    """Test cart item mapping"""

    def test_maps_cart_item(self):
        item = transform_cart_data({
            "cartId": 100,
            "course": {"id": 5, "code": "CS101", "name": "자료구조", "credits": 3, "courseType": "MAJOR_ELEC"},
            "professor": {"name": "김교수"},
            "schedule": [{"dayOfWeek": 2, "startTime": "13:00:00", "endTime": "14:30:00"}],
            "addedAt": "2025-02-01T10:00:00",
        })

        assert item.cart_id == 100
        assert item.id == 5
        assert item.subject_code == "CS101"
        assert item.credits == 3
        assert item.course_type == "전공선택"
        assert item.added_at == "2025-02-01T10:00:00"


class TestTransformEnrollment:
    """Test enrollment mapping"""

    def test_full_is_derived_from_counts(self):
        enrollment = transform_enrollment_data({
            "enrollmentId": 500,
            "course": {"id": 5, "courseCode": "CS101", "courseName": "자료구조", "credits": 3,
                       "currentStudents": 30, "maxStudents": 30},
            "canCancel": True,
        })

        assert enrollment.enrollment_id == 500
        assert enrollment.is_full is True
        assert enrollment.can_cancel is True

    def test_zero_capacity_is_not_full(self):
        enrollment = transform_enrollment_data({"enrollmentId": 1, "course": {"id": 1}})
        assert enrollment.is_full is False

    def test_current_enrolled_translates_bare_type_code(self):
        enrollment = transform_current_enrolled({
            "enrollmentId": 1,
            "course": {"id": 1, "courseCode": "GE1", "courseName": "글쓰기", "courseType": "GEN_REQ"},
        })
        assert enrollment.course_type == "교양필수"

    def test_provisional_from_course(self):
        course = transform_course_data(wire_course(5, "CS101", "자료구조", 3, [(1, "09:00:00", "10:00:00")]))
        enrollment = Enrollment.provisional(course, 900)

        assert enrollment.enrollment_id == 900
        assert enrollment.id == 5
        assert enrollment.schedule == course.schedule
        assert enrollment.can_cancel is True


class TestCourseTypeMapping:
    """Test label <-> code helpers"""

    def test_label(self):
        assert course_type_label("MAJOR_REQ") == "전공필수"
        assert course_type_label({"code": "GEN_ELEC"}) == "교양선택"
        assert course_type_label("UNKNOWN") == "UNKNOWN"
        assert course_type_label(None) == ""

    def test_code(self):
        assert course_type_code("전공필수") == "MAJOR_REQ"
        assert course_type_code("MAJOR_REQ") == "MAJOR_REQ"
        assert course_type_code("없는값") is None
        assert course_type_code("") is None
