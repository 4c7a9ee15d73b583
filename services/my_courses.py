"""Student "my courses" loader shared by the course list and timetable pages.

Source of truth is GET /api/v1/enrollments/my. Results are held for a short
time in a TTLCache owned by the app (app.extensions["my_courses_cache"]),
keyed per user, and dropped after any enroll / cancel.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from services.api_client import ApiError, error_message, is_success, response_data, response_message
from services.course_api import CourseApi
from utils.credits import calculate_total_credits
from utils.transformers import Enrollment, transform_current_enrolled

logger = logging.getLogger(__name__)


class TTLCache:
    """Per-key values that expire `ttl_seconds` after they were set.

    Shared by every request thread of the app, so all access holds `_lock`.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                self._entries.pop(key, None)
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)


@dataclass(frozen=True)
class MyCourses:
    term: Optional[Dict[str, Any]] = None
    summary: Optional[Dict[str, Any]] = None
    courses: Tuple[Enrollment, ...] = field(default_factory=tuple)

    @property
    def total_credits(self) -> int:
        summary_total = (self.summary or {}).get("totalCredits")
        if summary_total is not None:
            return summary_total
        return calculate_total_credits(self.courses)


class MyCoursesLoader:
    def __init__(self, api: CourseApi, cache: TTLCache):
        self.api = api
        self.cache = cache
        self.error: Optional[str] = None

    async def load(self, key: Hashable, *, force: bool = False, enrollment_period_id: Any = None) -> MyCourses:
        """Cached result when fresh; otherwise fetch. On failure sets `error` and returns an empty MyCourses."""
        self.error = None
        if not force:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            response = await self.api.get_my_enrollments(enrollment_period_id)
        except ApiError as exc:
            logger.warning("my courses fetch failed: %r", exc)
            self.error = error_message(exc, "수강 과목 정보를 불러오는 중 오류가 발생했습니다.")
            return MyCourses()

        if not is_success(response):
            self.error = response_message(response, "수강 과목 정보를 불러올 수 없습니다.")
            return MyCourses()

        data = response_data(response) or {}
        result = MyCourses(
            term=data.get("term"),
            summary=data.get("summary"),
            courses=tuple(transform_current_enrolled(e) for e in data.get("enrollments") or []),
        )
        self.cache.set(key, result)
        return result

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        self.cache.invalidate(key)
