"""Course registration session: catalog page, cart and enrollments.

CourseRegistration is the single owner of that state during a session and
the only place where mutating registration calls are made. Every action:
  1. runs the pre-flight validator (no network call on rejection),
  2. calls the backend,
  3. reconciles local state (local patch first, refetch when it matters),
  4. reports the outcome through `toast` - it never raises ApiError.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from services.api_client import (
    ApiError,
    error_message,
    is_success,
    response_data,
    response_message,
)
from services.course_api import CourseApi
from services.validation import PreflightValidator, Rejection
from utils.credits import calculate_total_credits
from utils.debounce import Debouncer
from utils.transformers import (
    CartItem,
    Course,
    Enrollment,
    course_type_code,
    transform_cart_data,
    transform_course_data,
    transform_enrollment_data,
)

logger = logging.getLogger(__name__)

ALL = "all"
DEFAULT_SORT = "courseCode,asc"


@dataclass
class Toast:
    message: str
    severity: str = "error"  # success | info | warning | error


@dataclass
class Pagination:
    page: int = 0
    size: int = 10
    total: int = 0
    total_pages: int = 0


@dataclass
class CourseFilters:
    search_term: str = ""
    department: Any = ALL
    course_type: Any = ALL
    credits: Any = ALL
    sort: str = DEFAULT_SORT

    def query(self) -> Dict[str, Any]:
        """Filters as CourseApi.get_courses keyword arguments ("all" = no filter)."""
        params: Dict[str, Any] = {"sort": self.sort}
        keyword = (self.search_term or "").strip()
        if keyword:
            params["keyword"] = keyword
        if self.department not in (ALL, None, ""):
            params["department_id"] = int(self.department)
        if self.course_type not in (ALL, None, ""):
            params["course_type"] = course_type_code(self.course_type)
        if self.credits not in (ALL, None, ""):
            params["credits"] = int(self.credits)
        return params


def split_enroll_result(response: Any) -> Tuple[List[dict], List[dict]]:
    data = response_data(response) or {}
    succeeded = data.get("succeeded") or [] if isinstance(data, dict) else []
    failed = data.get("failed") or [] if isinstance(data, dict) else []
    return list(succeeded), list(failed)


def summarize_failures(failed: List[dict]) -> str:
    # "X: 정원마감, Y: 시간표 충돌"
    parts = []
    for item in failed:
        name = item.get("courseName") or item.get("courseId")
        message = item.get("message") or ""
        parts.append(f"{name}: {message}" if message else f"{name}")
    return ", ".join(parts)


class CourseRegistration:
    def __init__(
        self,
        api: CourseApi,
        *,
        validator: Optional[PreflightValidator] = None,
        page_size: int = 10,
        search_debounce_seconds: float = 0.5,
        on_enrollment_changed: Optional[Callable[[], None]] = None,
    ):
        self.api = api
        self.validator = validator or PreflightValidator()
        self._on_enrollment_changed = on_enrollment_changed

        self.filters = CourseFilters()
        self.pagination = Pagination(size=page_size)
        self.courses: List[Course] = []
        self.cart: List[CartItem] = []
        self.registered: List[Enrollment] = []

        self.error: Optional[str] = None
        self.toast: Optional[Toast] = None
        # confirmation-dialog slots
        self.pending_course: Optional[Course] = None
        self.pending_cancellation: Optional[Enrollment] = None

        self.enrollment_period: Optional[Dict[str, Any]] = None
        self.enrollment_period_id: Any = None
        # filter/search re-fetches are suppressed until the startup fetches land
        self.initial_load_complete = False

        self._busy_count = 0
        self._search = Debouncer(search_debounce_seconds, self._fetch_first_page)

    # ------------------------------------------------------------------
    # state helpers
    # ------------------------------------------------------------------

    @property
    def loading(self) -> bool:
        return self._busy_count > 0

    @contextmanager
    def _busy(self):
        self._busy_count += 1
        try:
            yield
        finally:
            self._busy_count -= 1

    @property
    def total_credits(self) -> int:
        return calculate_total_credits(self.cart)

    @property
    def registered_credits(self) -> int:
        return calculate_total_credits(self.registered)

    def _notify(self, message: str, severity: str = "error") -> None:
        self.toast = Toast(message=message, severity=severity)

    def _reject(self, rejection: Rejection) -> None:
        logger.info("registration pre-check rejected: %s", rejection.message)
        self._notify(rejection.message, rejection.severity)

    def _fail(self, exc: ApiError, fallback: str) -> None:
        logger.warning("registration request failed: %r", exc)
        self._notify(error_message(exc, fallback), "error")

    def _patch_catalog(self, course_id: Any = None, **changes: Any) -> None:
        # course_id None -> every row on the page
        self.courses = [
            replace(c, **changes) if course_id is None or c.id == course_id else c
            for c in self.courses
        ]

    def _enrollment_changed(self) -> None:
        if self._on_enrollment_changed is not None:
            self._on_enrollment_changed()

    def close(self) -> None:
        self._search.cancel()

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Resolve the current period, then hydrate catalog + cart + enrollments."""
        with self._busy():
            try:
                response = await self.api.get_current_enrollment_period()
            except ApiError as exc:
                logger.warning("enrollment period lookup failed: %r", exc)
                self.error = error_message(exc, "수강신청 기간 정보를 불러오는 중 오류가 발생했습니다.")
                return False

            data = response_data(response) if is_success(response) else None
            period = data.get("currentPeriod") if isinstance(data, dict) else None
            if not isinstance(period, dict) or period.get("id") is None:
                self.error = "수강신청 기간 정보를 불러올 수 없습니다."
                return False

            self.enrollment_period = period
            self.enrollment_period_id = period["id"]

            await asyncio.gather(self.fetch_courses(0), self.fetch_carts(), self.fetch_enrollments())

        self.initial_load_complete = True
        return True

    async def fetch_courses(self, page: Optional[int] = None) -> None:
        if not self.enrollment_period_id:
            return

        current_page = self.pagination.page if page is None else page
        with self._busy():
            self.error = None
            try:
                response = await self.api.get_courses(
                    enrollment_period_id=self.enrollment_period_id,
                    page=current_page,
                    size=self.pagination.size,
                    **self.filters.query(),
                )
            except ApiError as exc:
                logger.warning("catalog fetch failed: %r", exc)
                self.error = error_message(exc, "강의 목록을 불러오는 중 오류가 발생했습니다.")
                self.courses = []
                return

            data = response_data(response) if is_success(response) else None
            if not isinstance(data, dict):
                self.error = "강의 목록을 불러올 수 없습니다."
                self.courses = []
                return

            self.courses = [transform_course_data(c) for c in data.get("content") or []]
            if data.get("totalElements") is not None:
                self.pagination = Pagination(
                    page=current_page,
                    size=data.get("size") or self.pagination.size,
                    total=data["totalElements"],
                    total_pages=data.get("totalPages") or 0,
                )
            else:
                self.pagination.page = current_page

    async def fetch_carts(self) -> None:
        try:
            response = await self.api.get_carts()
        except ApiError as exc:
            logger.warning("cart fetch failed: %r", exc)
            self.cart = []
            return

        data = response_data(response) if is_success(response) else None
        items = data.get("courses") if isinstance(data, dict) else None
        self.cart = [transform_cart_data(item) for item in items or []]

    async def fetch_enrollments(self) -> None:
        try:
            response = await self.api.get_my_enrollments(self.enrollment_period_id)
        except ApiError as exc:
            # keep the last known list; the server re-checks anyway
            logger.warning("enrollment fetch failed: %r", exc)
            return

        data = response_data(response) if is_success(response) else None
        if not isinstance(data, dict):
            return
        self.registered = [transform_enrollment_data(item) for item in data.get("enrollments") or []]

    async def _fetch_first_page(self) -> None:
        self.pagination.page = 0
        await self.fetch_courses(0)

    async def _reconcile(self, *, cart: bool = True) -> None:
        # local patches are provisional; the refetch is authoritative
        fetches = [self.fetch_enrollments(), self.fetch_courses()]
        if cart:
            fetches.append(self.fetch_carts())
        await asyncio.gather(*fetches)

    async def find_course(self, course_id: Any) -> Optional[Course]:
        """Catalog row by id; falls back to the course detail endpoint."""
        for course in self.courses:
            if course.id == course_id:
                return course
        try:
            response = await self.api.get_course_detail(course_id)
        except ApiError as exc:
            logger.debug("course %s detail lookup failed: %r", course_id, exc)
            return None
        data = response_data(response) if is_success(response) else None
        return transform_course_data(data) if isinstance(data, dict) else None

    # ------------------------------------------------------------------
    # filters / search / paging
    # ------------------------------------------------------------------

    def set_search_term(self, term: str) -> None:
        """Free-text search: re-fetch page 0 once typing has been idle for a while."""
        self.filters.search_term = term or ""
        if self.initial_load_complete:
            self._search.trigger()

    async def search_now(self) -> None:
        # Enter key: skip the debounce
        self._search.cancel()
        if self.enrollment_period_id:
            await self._fetch_first_page()

    async def set_filter(self, *, department: Any = None, course_type: Any = None, credits: Any = None) -> None:
        if department is not None:
            self.filters.department = department
        if course_type is not None:
            self.filters.course_type = course_type
        if credits is not None:
            self.filters.credits = credits
        # dropdowns are not debounced
        if self.initial_load_complete:
            await self._fetch_first_page()

    async def change_page(self, page: int) -> None:
        self.pagination.page = page
        await self.fetch_courses(page)

    # ------------------------------------------------------------------
    # cart
    # ------------------------------------------------------------------

    async def add_to_cart(self, course: Course) -> bool:
        rejection = self.validator.validate_cart_add(course, self.cart, self.registered)
        if rejection is not None:
            self._reject(rejection)
            return False

        with self._busy():
            self.error = None
            try:
                response = await self.api.add_to_carts([course.id])
            except ApiError as exc:
                self._fail(exc, "장바구니에 추가하는 중 오류가 발생했습니다.")
                return False

            if not is_success(response):
                self._notify(response_message(response, "장바구니에 추가하는 중 오류가 발생했습니다."))
                return False

            await self.fetch_carts()
            self._patch_catalog(course.id, is_in_cart=True)
            self._notify(f"{course.subject_name}이(가) 장바구니에 추가되었습니다.", "success")
            return True

    async def remove_from_cart(self, course_or_cart_id: Any) -> bool:
        item = next(
            (c for c in self.cart if c.id == course_or_cart_id or c.cart_id == course_or_cart_id),
            None,
        )
        if item is None or item.cart_id is None:
            self.error = "장바구니 항목을 찾을 수 없습니다."
            self._notify(self.error)
            return False

        with self._busy():
            self.error = None
            try:
                response = await self.api.remove_from_carts([item.cart_id])
            except ApiError as exc:
                self._fail(exc, "장바구니에서 제거하는 중 오류가 발생했습니다.")
                return False

            if not is_success(response):
                self._notify(response_message(response, "장바구니에서 제거하는 중 오류가 발생했습니다."))
                return False

            await self.fetch_carts()
            self._patch_catalog(item.id, is_in_cart=False)
            self._notify("장바구니에서 제거되었습니다.", "success")
            return True

    async def clear_all_carts(self) -> bool:
        with self._busy():
            self.error = None
            try:
                response = await self.api.clear_carts()
            except ApiError as exc:
                self._fail(exc, "장바구니를 비우는 중 오류가 발생했습니다.")
                return False

            if not is_success(response):
                self._notify(response_message(response, "장바구니를 비우는 중 오류가 발생했습니다."))
                return False

            await self.fetch_carts()
            self._patch_catalog(None, is_in_cart=False)
            self._notify("장바구니가 비워졌습니다.", "success")
            return True

    # ------------------------------------------------------------------
    # enrollment
    # ------------------------------------------------------------------

    async def confirm_registration(self) -> bool:
        """Enroll every course in the cart with one bulk call."""
        rejection = self.validator.validate_cart_confirm(self.cart, self.registered)
        if rejection is not None:
            self._reject(rejection)
            return False

        course_ids = [c.id for c in self.cart if c.id is not None]
        with self._busy():
            self.error = None
            try:
                response = await self.api.enroll_courses(course_ids)
            except ApiError as exc:
                self._fail(exc, "수강신청 중 오류가 발생했습니다.")
                return False

            if not is_success(response):
                self._notify(response_message(response, "수강신청 중 오류가 발생했습니다."))
                return False

            succeeded, failed = split_enroll_result(response)
            cart_by_id = {c.id: c for c in self.cart}
            self.registered.extend(
                Enrollment.provisional(cart_by_id[s.get("courseId")], s.get("enrollmentId"))
                for s in succeeded
                if s.get("courseId") in cart_by_id
            )

            if succeeded:
                await self._reconcile()
                self._enrollment_changed()

            if succeeded and failed:
                self._notify(
                    f"{len(succeeded)}개 과목 수강신청 완료, 일부 실패: {summarize_failures(failed)}",
                    "warning",
                )
            elif succeeded:
                self._notify(f"{len(succeeded)}개 과목 수강신청이 완료되었습니다.", "success")
            elif failed:
                self._notify(f"수강신청에 실패했습니다: {summarize_failures(failed)}")
            else:
                self._notify("수강신청 결과를 확인할 수 없습니다.")
            return bool(succeeded)

    def request_enroll(self, course: Course) -> None:
        # opens the confirmation dialog; nothing is sent yet
        self.pending_course = course

    async def confirm_enroll(self) -> bool:
        """Enroll the course held by the confirmation dialog."""
        course = self.pending_course
        self.pending_course = None
        if course is None:
            return False

        rejection = self.validator.validate_direct_enroll(course, self.cart, self.registered)
        if rejection is not None:
            self._reject(rejection)
            return False

        with self._busy():
            self.error = None
            try:
                response = await self.api.enroll_courses([course.id])
            except ApiError as exc:
                self._fail(exc, "수강신청 중 오류가 발생했습니다.")
                return False

            if not is_success(response):
                self._notify(response_message(response, "수강신청 중 오류가 발생했습니다."))
                return False

            succeeded, failed = split_enroll_result(response)
            if succeeded:
                self.registered.append(Enrollment.provisional(course, succeeded[0].get("enrollmentId")))
                await self._reconcile()
                self._enrollment_changed()
                self._notify(f"{course.subject_name} 수강신청이 완료되었습니다.", "success")
                return True

            message = failed[0].get("message") if failed else None
            self._notify(message or "수강신청에 실패했습니다.")
            return False

    def request_cancel(self, enrollment: Enrollment) -> None:
        self.pending_cancellation = enrollment

    async def confirm_cancel(self) -> bool:
        enrollment = self.pending_cancellation
        self.pending_cancellation = None
        if enrollment is None:
            return False
        return await self.cancel_enrollment(enrollment.enrollment_id)

    async def cancel_enrollment(self, enrollment_id: Any) -> bool:
        with self._busy():
            self.error = None
            try:
                response = await self.api.cancel_enrollments([enrollment_id])
            except ApiError as exc:
                self._fail(exc, "수강신청 취소 중 오류가 발생했습니다.")
                return False

            if not is_success(response):
                self._notify(response_message(response, "수강신청 취소 중 오류가 발생했습니다."))
                return False

            data = response_data(response) or {}
            failed = data.get("failed") or [] if isinstance(data, dict) else []
            cancelled = data.get("cancelled") or [] if isinstance(data, dict) else []
            if failed and not cancelled:
                self._notify(failed[0].get("message") or "수강신청 취소에 실패했습니다.")
                return False

            self.registered = [e for e in self.registered if e.enrollment_id != enrollment_id]
            # capacity counts changed server side
            await self._reconcile(cart=False)
            self._enrollment_changed()
            self._notify("수강신청이 취소되었습니다.", "success")
            return True
