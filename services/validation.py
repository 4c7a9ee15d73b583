# services/validation.py
"""Pre-flight checks run BEFORE any mutating registration request.

Advisory only. The server re-validates and its rejection always wins.

Every check returns a Rejection (or None); nothing here raises.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from utils.credits import (
    MAX_CREDITS,
    calculate_total_credits,
    get_remaining_credits,
    is_credit_limit_exceeded,
)
from utils.schedule import check_multiple_schedule_conflicts, check_schedule_conflict


class RejectionCategory(Enum):
    ALREADY_ENROLLED = "중복 신청"
    ALREADY_IN_CART = "중복 담기"
    DUPLICATE_SUBJECT = "분반 중복"
    SCHEDULE_CONFLICT = "시간표 충돌"
    CREDIT_LIMIT = "학점 초과"
    CAPACITY_FULL = "정원 마감"
    EMPTY_CART = "장바구니"


WARNING_CATEGORIES = {RejectionCategory.ALREADY_ENROLLED, RejectionCategory.ALREADY_IN_CART}


@dataclass(frozen=True)
class Rejection:
    category: RejectionCategory
    detail: str

    @property
    def message(self) -> str:
        # bracketed tag tells a client-side rejection apart from a server one
        return f"[{self.category.value}] {self.detail}"

    @property
    def severity(self) -> str:
        return "warning" if self.category in WARNING_CATEGORIES else "error"


def _name(course: Any, default: str = "다른 강의") -> str:
    return getattr(course, "subject_name", None) or default


def already_enrolled(course: Any, enrollments: Iterable[Any]) -> Optional[Rejection]:
    if any(e.id == course.id for e in enrollments):
        return Rejection(RejectionCategory.ALREADY_ENROLLED, "이미 수강신청이 완료된 강의입니다.")
    return None


def already_in_cart(course: Any, cart: Iterable[Any]) -> Optional[Rejection]:
    if any(c.id == course.id for c in cart):
        return Rejection(RejectionCategory.ALREADY_IN_CART, "이미 장바구니에 추가된 강의입니다.")
    return None


def duplicate_subject(course: Any, held: Iterable[Any]) -> Optional[Rejection]:
    # one section per subject: same subjectCode under a different course id
    code = getattr(course, "subject_code", None)
    if not code:
        return None
    for other in held:
        if other.id != course.id and getattr(other, "subject_code", None) == code:
            return Rejection(
                RejectionCategory.DUPLICATE_SUBJECT,
                f"{_name(course)}({code})의 다른 분반이 이미 담겨 있거나 신청되어 있습니다.",
            )
    return None


def schedule_conflict(course: Any, held: Sequence[Any]) -> Optional[Rejection]:
    conflict = check_schedule_conflict(course, held)
    if conflict.has_conflict:
        return Rejection(
            RejectionCategory.SCHEDULE_CONFLICT,
            f"{_name(course)}의 시간표가 {_name(conflict.conflicting_course)}와 충돌합니다.",
        )
    return None


def credit_limit(additional: int, held: Iterable[Any]) -> Optional[Rejection]:
    current = calculate_total_credits(held)
    if is_credit_limit_exceeded(current, additional):
        return Rejection(
            RejectionCategory.CREDIT_LIMIT,
            f"최대 수강 가능 학점({MAX_CREDITS}학점)을 초과합니다. "
            f"(현재: {current}학점, 추가 시: {current + additional}학점, "
            f"남은 학점: {get_remaining_credits(current)}학점)",
        )
    return None


def capacity_full(course: Any) -> Optional[Rejection]:
    current = getattr(course, "current_students", 0) or 0
    maximum = getattr(course, "max_students", 0) or 0
    if getattr(course, "is_full", False) or (maximum and current >= maximum):
        return Rejection(RejectionCategory.CAPACITY_FULL, "수강 정원이 마감되었습니다.")
    return None


class PreflightValidator:
    """Client-side checks for cart-add, direct enroll and cart confirm."""

    def validate_cart_add(self, course: Any, cart: Sequence[Any], enrollments: Sequence[Any]) -> Optional[Rejection]:
        # no capacity check: a full course may still be carted
        held = [*cart, *enrollments]
        return (
            already_enrolled(course, enrollments)
            or already_in_cart(course, cart)
            or duplicate_subject(course, held)
            or schedule_conflict(course, held)
            or credit_limit(course.credits or 0, held)
        )

    def validate_direct_enroll(self, course: Any, cart: Sequence[Any], enrollments: Sequence[Any]) -> Optional[Rejection]:
        # The course itself may already sit in the cart: enrolling removes it
        # from the cart atomically, so it is left out of every baseline.
        others = [c for c in [*cart, *enrollments] if c.id != course.id]
        return (
            already_enrolled(course, enrollments)
            or capacity_full(course)
            or duplicate_subject(course, others)
            or schedule_conflict(course, others)
            or credit_limit(course.credits or 0, others)
        )

    def validate_cart_confirm(self, cart: Sequence[Any], enrollments: Sequence[Any]) -> Optional[Rejection]:
        if not cart:
            return Rejection(RejectionCategory.EMPTY_CART, "장바구니가 비어있습니다.")

        report = check_multiple_schedule_conflicts(cart, enrollments)
        if report.has_conflict:
            first = report.conflicts[0]
            return Rejection(
                RejectionCategory.SCHEDULE_CONFLICT,
                f"{_name(first.course)}의 시간표가 {_name(first.conflicting_course)}와 충돌합니다.",
            )

        return credit_limit(calculate_total_credits(cart), enrollments)

