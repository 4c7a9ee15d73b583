"""
Unit tests for the pre-flight advisory validator
"""
from utils.schedule import ScheduleSlot
from utils.transformers import CartItem, Course, Enrollment
from services.validation import PreflightValidator, RejectionCategory


def slots(*items):
    return tuple(ScheduleSlot(day, start, end) for day, start, end in items)


def catalog(course_id, code, credits=3, schedule=(), **kw):
    return Course(id=course_id, subject_code=code, subject_name=f"{code} 강의", credits=credits, schedule=schedule, **kw)


def cart(course_id, code, credits=3, schedule=()):
    return CartItem(cart_id=course_id + 100, id=course_id, subject_code=code, subject_name=f"{code} 강의",
                    credits=credits, schedule=schedule)


def enrolled(course_id, code, credits=3, schedule=()):
    return Enrollment(enrollment_id=course_id + 500, id=course_id, subject_code=code,
                      subject_name=f"{code} 강의", credits=credits, schedule=schedule)


class TestCartAdd:
    """Test validate_cart_add"""

    def setup_method(self):
        self.validator = PreflightValidator()

    def test_already_enrolled_wins(self):
        course = catalog(1, "CS1")
        rejection = self.validator.validate_cart_add(course, [cart(1, "CS1")], [enrolled(1, "CS1")])

        assert rejection.category is RejectionCategory.ALREADY_ENROLLED
        assert rejection.message.startswith("[중복 신청]")
        assert rejection.severity == "warning"

    def test_already_in_cart(self):
        rejection = self.validator.validate_cart_add(catalog(1, "CS1"), [cart(1, "CS1")], [])
        assert rejection.message.startswith("[중복 담기]")

    def test_other_section_of_same_subject(self):
        rejection = self.validator.validate_cart_add(catalog(2, "CS1"), [], [enrolled(1, "CS1")])

        assert rejection.category is RejectionCategory.DUPLICATE_SUBJECT
        assert rejection.message.startswith("[분반 중복]")
        assert rejection.severity == "error"

    def test_schedule_conflict(self):
        a = cart(1, "CS1", schedule=slots((1, "09:00:00", "10:00:00")))
        b = catalog(2, "CS2", schedule=slots((1, "09:30:00", "10:30:00")))

        rejection = self.validator.validate_cart_add(b, [a], [])

        assert rejection.category is RejectionCategory.SCHEDULE_CONFLICT
        assert rejection.message.startswith("[시간표 충돌]")

    def test_credit_cap_counts_cart_and_enrollments(self):
        held = [enrolled(10, "E1", 18)]
        rejection = self.validator.validate_cart_add(catalog(1, "CS1", 3), [cart(2, "CS2", 1)], held)

        assert rejection.category is RejectionCategory.CREDIT_LIMIT
        assert "현재: 19학점" in rejection.message
        assert "추가 시: 22학점" in rejection.message

    def test_exactly_at_cap_passes(self):
        assert self.validator.validate_cart_add(catalog(1, "CS1", 3), [], [enrolled(10, "E1", 18)]) is None

    def test_full_course_may_still_be_carted(self):
        course = catalog(1, "CS1", is_full=True, current_students=40, max_students=40)
        assert self.validator.validate_cart_add(course, [], []) is None


class TestDirectEnroll:
    """Test validate_direct_enroll"""

    def setup_method(self):
        self.validator = PreflightValidator()

    def test_capacity_full(self):
        course = catalog(1, "CS1", current_students=40, max_students=40)
        rejection = self.validator.validate_direct_enroll(course, [], [])

        assert rejection.category is RejectionCategory.CAPACITY_FULL
        assert rejection.message.startswith("[정원 마감]")

    def test_course_already_in_cart_is_not_its_own_conflict(self):
        schedule = slots((1, "09:00:00", "10:00:00"))
        course = catalog(1, "CS1", schedule=schedule)
        assert self.validator.validate_direct_enroll(course, [cart(1, "CS1", schedule=schedule)], []) is None

    def test_conflict_with_enrollment(self):
        course = catalog(1, "CS1", schedule=slots((3, "13:00:00", "15:00:00")))
        held = [enrolled(2, "CS2", schedule=slots((3, "14:00:00", "16:00:00")))]
        rejection = self.validator.validate_direct_enroll(course, [], held)
        assert rejection.category is RejectionCategory.SCHEDULE_CONFLICT

    def test_course_in_cart_not_counted_twice_against_credit_cap(self):
        course = catalog(1, "CS1", 3)
        rejection = self.validator.validate_direct_enroll(course, [cart(1, "CS1", 3)], [enrolled(9, "E", 18)])
        assert rejection is None

    def test_other_cart_courses_count_toward_credit_cap(self):
        course = catalog(1, "CS1", 3)

        rejection = self.validator.validate_direct_enroll(course, [cart(2, "CS2", 3)], [enrolled(9, "E", 18)])

        assert rejection.category is RejectionCategory.CREDIT_LIMIT
        assert rejection.message.startswith("[학점 초과]")
        assert "추가 시: 24학점" in rejection.message

    def test_other_section_of_enrolled_subject(self):
        rejection = self.validator.validate_direct_enroll(catalog(2, "CS1"), [], [enrolled(1, "CS1")])

        assert rejection.category is RejectionCategory.DUPLICATE_SUBJECT
        assert rejection.message.startswith("[분반 중복]")

    def test_other_section_of_subject_in_cart(self):
        rejection = self.validator.validate_direct_enroll(catalog(2, "CS1"), [cart(1, "CS1")], [])
        assert rejection.category is RejectionCategory.DUPLICATE_SUBJECT


class TestCartConfirm:
    """Test validate_cart_confirm"""

    def setup_method(self):
        self.validator = PreflightValidator()

    def test_empty_cart(self):
        rejection = self.validator.validate_cart_confirm([], [])
        assert rejection.category is RejectionCategory.EMPTY_CART
        assert rejection.message.startswith("[장바구니]")

    def test_conflict_inside_batch(self):
        items = [
            cart(1, "CS1", schedule=slots((1, "09:00:00", "10:00:00"))),
            cart(2, "CS2", schedule=slots((1, "09:30:00", "10:30:00"))),
        ]
        rejection = self.validator.validate_cart_confirm(items, [])
        assert rejection.category is RejectionCategory.SCHEDULE_CONFLICT
        assert "충돌합니다" in rejection.detail

    def test_cart_credits_over_cap(self):
        rejection = self.validator.validate_cart_confirm([cart(1, "CS1", 4)], [enrolled(9, "E", 18)])
        assert rejection.category is RejectionCategory.CREDIT_LIMIT

    def test_ok(self):
        assert self.validator.validate_cart_confirm([cart(1, "CS1", 3)], [enrolled(9, "E", 18)]) is None
