"""
LMS portal - test configuration, fakes and fixtures
"""
import math
from typing import Any, Dict, List, Optional

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models.user import User
from services.api_client import ApiError


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    return {"success": True, "data": data, "message": message}


def wire_slots(slots) -> List[Dict[str, Any]]:
    # slots: [(dayOfWeek, "HH:mm:ss", "HH:mm:ss"), ...]
    return [
        {"dayOfWeek": day, "startTime": start, "endTime": end, "classroom": "공학관 101"}
        for day, start, end in slots
    ]


def wire_course(
    course_id: int,
    code: str,
    name: str,
    credits: int = 3,
    slots=(),
    *,
    current: int = 10,
    maximum: int = 40,
    is_full: bool = False,
    course_type=("MAJOR_REQ", "전공필수"),
) -> Dict[str, Any]:
    """Catalog item as GET /api/v1/enrollments/courses returns it"""
    return {
        "id": course_id,
        "courseCode": code,
        "courseName": name,
        "credits": credits,
        "professor": {"id": 7, "name": "김교수"},
        "department": {"id": 10, "name": "컴퓨터공학과"},
        "courseType": {"code": course_type[0], "name": course_type[1]},
        "enrollment": {"current": current, "max": maximum, "isFull": is_full},
        "schedule": wire_slots(slots),
        "isInCart": False,
        "isEnrolled": False,
    }


class FakeCourseApi:
    """In-memory stand-in for CourseApi that keeps cart / enrollment state."""

    MUTATING = {"add_to_carts", "remove_from_carts", "clear_carts", "enroll_courses", "cancel_enrollments"}

    def __init__(self, catalog=(), period_id: Optional[int] = 1):
        self.catalog = {c["id"]: c for c in catalog}
        self.period = {"id": period_id, "name": "2025학년도 1학기"} if period_id else None
        self.carts: List[Dict[str, Any]] = []
        self.enrollments: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.enroll_response: Optional[Dict[str, Any]] = None
        self._next_cart_id = 100
        self._next_enrollment_id = 500

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def called(self, name: str) -> List[tuple]:
        return [args for call, args in self.calls if call == name]

    @property
    def mutating_calls(self) -> List[str]:
        return [name for name, _ in self.calls if name in self.MUTATING]

    # ---- seeding ----

    def seed_cart(self, course_id: int) -> Dict[str, Any]:
        c = self.catalog[course_id]
        item = {
            "cartId": self._next_cart_id,
            "course": {
                "id": c["id"],
                "code": c["courseCode"],
                "name": c["courseName"],
                "credits": c["credits"],
                "courseType": c["courseType"]["code"],
            },
            "professor": c["professor"],
            "schedule": c["schedule"],
            "enrollment": c["enrollment"],
            "addedAt": "2025-02-01T10:00:00",
        }
        self._next_cart_id += 1
        self.carts.append(item)
        return item

    def seed_enrollment(self, course: Dict[str, Any]) -> Dict[str, Any]:
        item = {
            "enrollmentId": self._next_enrollment_id,
            "course": {
                "id": course["id"],
                "courseCode": course["courseCode"],
                "courseName": course["courseName"],
                "credits": course["credits"],
                "currentStudents": course["enrollment"]["current"],
                "maxStudents": course["enrollment"]["max"],
                "courseType": course["courseType"],
            },
            "professor": course["professor"],
            "schedule": course["schedule"],
            "canCancel": True,
        }
        self._next_enrollment_id += 1
        self.enrollments.append(item)
        return item

    # ---- CourseApi surface ----

    async def get_current_enrollment_period(self):
        self._record("get_current_enrollment_period")
        return ok({"currentPeriod": self.period})

    async def get_courses(self, *, enrollment_period_id, page=0, size=10, sort="courseCode,asc",
                          keyword="", department_id=None, course_type=None, credits=None):
        self._record("get_courses", {
            "page": page, "size": size, "keyword": keyword, "department_id": department_id,
            "course_type": course_type, "credits": credits, "sort": sort,
        })
        items = list(self.catalog.values())
        if keyword:
            items = [c for c in items if keyword in c["courseName"] or keyword in c["courseCode"]]
        if course_type:
            items = [c for c in items if c["courseType"]["code"] == course_type]
        if credits is not None:
            items = [c for c in items if c["credits"] == credits]
        cart_ids = {c["course"]["id"] for c in self.carts}
        enrolled_ids = {e["course"]["id"] for e in self.enrollments}
        content = [
            {**c, "isInCart": c["id"] in cart_ids, "isEnrolled": c["id"] in enrolled_ids}
            for c in items[page * size:(page + 1) * size]
        ]
        return ok({
            "content": content,
            "totalElements": len(items),
            "totalPages": math.ceil(len(items) / size) if items else 0,
            "size": size,
        })

    async def get_course_detail(self, course_id):
        self._record("get_course_detail", course_id)
        if course_id not in self.catalog:
            raise ApiError("강의를 찾을 수 없습니다.", status=404)
        return ok(self.catalog[course_id])

    async def get_carts(self):
        self._record("get_carts")
        return ok({"courses": list(self.carts)})

    async def add_to_carts(self, course_ids):
        self._record("add_to_carts", list(course_ids))
        for course_id in course_ids:
            self.seed_cart(course_id)
        return ok({"added": list(course_ids)})

    async def remove_from_carts(self, cart_ids):
        self._record("remove_from_carts", list(cart_ids))
        self.carts = [c for c in self.carts if c["cartId"] not in cart_ids]
        return ok({"removed": list(cart_ids)})

    async def clear_carts(self):
        self._record("clear_carts")
        self.carts = []
        return ok()

    async def enroll_courses(self, course_ids):
        self._record("enroll_courses", list(course_ids))
        if self.enroll_response is not None:
            succeeded = self.enroll_response["data"]["succeeded"]
            for s in succeeded:
                self.seed_enrollment(self.catalog[s["courseId"]])
            return self.enroll_response

        succeeded = []
        for course_id in course_ids:
            item = self.seed_enrollment(self.catalog[course_id])
            succeeded.append({"courseId": course_id, "enrollmentId": item["enrollmentId"]})
        self.carts = [c for c in self.carts if c["course"]["id"] not in course_ids]
        return ok({"succeeded": succeeded, "failed": []})

    async def get_my_enrollments(self, enrollment_period_id=None):
        self._record("get_my_enrollments", enrollment_period_id)
        total = sum(e["course"]["credits"] for e in self.enrollments)
        return ok({
            "term": {"id": 1, "year": 2025, "termName": "1학기"},
            "summary": {"totalCourses": len(self.enrollments), "totalCredits": total},
            "enrollments": list(self.enrollments),
        })

    async def cancel_enrollments(self, enrollment_ids):
        self._record("cancel_enrollments", list(enrollment_ids))
        self.enrollments = [e for e in self.enrollments if e["enrollmentId"] not in enrollment_ids]
        return ok({"cancelled": list(enrollment_ids), "failed": []})


class FakeAssessmentApi:
    """Stand-in for AssessmentApi: canned responses, recorded calls."""

    def __init__(self, exam: Optional[Dict[str, Any]] = None):
        self.exam = exam or {}
        self.calls: List[tuple] = []
        self.my_result: Optional[Dict[str, Any]] = None
        self.start_response: Dict[str, Any] = ok({
            "attemptId": 77,
            "startedAt": "2024-01-01T09:00:00",
            "endAt": "2024-01-01T10:00:00",
            "remainingSeconds": 3600,
        })
        self.submit_response: Dict[str, Any] = ok({"attemptId": 77, "score": 8, "isLate": False})
        self.failures: Dict[str, Exception] = {}
        self.attempts: List[Dict[str, Any]] = []
        self.attempt_results: Dict[Any, Dict[str, Any]] = {}

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def called(self, name: str) -> List[tuple]:
        return [args for call, args in self.calls if call == name]

    async def get_student_exam_detail(self, exam_id):
        self._record("get_student_exam_detail", exam_id)
        return ok(self.exam)

    async def get_my_exam_result(self, exam_id):
        self._record("get_my_exam_result", exam_id)
        if self.my_result is None:
            raise ApiError("결과가 없습니다.", status=404)
        return ok(self.my_result)

    async def start_exam_attempt(self, exam_id):
        self._record("start_exam_attempt", exam_id)
        return self.start_response

    async def submit_exam_attempt(self, attempt_id, answers):
        self._record("submit_exam_attempt", attempt_id, dict(answers or {}))
        return self.submit_response

    async def get_professor_exam_attempts(self, exam_id, status=None):
        self._record("get_professor_exam_attempts", exam_id, status)
        return ok(list(self.attempts))

    async def get_professor_exam_attempt_result(self, attempt_id):
        self._record("get_professor_exam_attempt_result", attempt_id)
        if attempt_id not in self.attempt_results:
            raise ApiError("not found", status=404)
        return ok(self.attempt_results[attempt_id])

    async def grade_exam_attempt(self, attempt_id, payload):
        self._record("grade_exam_attempt", attempt_id, dict(payload))
        return ok({"attemptId": attempt_id, **payload})


@pytest.fixture
def app():
    """Flask app on an in-memory database"""
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def user(app) -> User:
    """Local mirror row for a logged-in student"""
    user = User(backend_id=1001, email="student@univ.ac.kr", name="홍길동", user_type="STUDENT")
    db.session.add(user)
    db.session.commit()
    return user
