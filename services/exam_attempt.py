"""Exam / quiz attempt lifecycle.

    NotStarted -> InProgress -> Submitted      (no transition goes back)

InProgress -> InProgress happens on reload: the attempt is rebuilt from the
tab meta or the in-progress cache, never by a second start call.

Late policy, by remaining seconds:
    > 0            answering allowed
    <= 0           time over: answers read-only, submit still allowed (server applies 10% penalty)
    <= -600        hard deadline: submit (and start) blocked without a network call
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from services.api_client import ApiError, error_message, is_success, response_data, response_message
from services.assessment_api import AssessmentApi
from services.exam_storage import AttemptSessionStore, ExamAttemptStorage, now_iso
from utils.exam import has_unsupported_question_type, normalize_question_data

logger = logging.getLogger(__name__)

LATE_GRACE_SECONDS = 10 * 60
LATE_PENALTY_RATE = 0.1
# countdown vs. server endAt divergence worth reporting
DRIFT_WARNING_SECONDS = 2

HARD_DEADLINE_MESSAGE = "제출 가능 시간이 지났습니다. (시험 종료 후 10분 초과)"
START_BLOCKED_MESSAGE = "시험/퀴즈 종료 후 10분이 경과하여 더 이상 응시를 시작할 수 없습니다."

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class NotStarted:
    pass


@dataclass(frozen=True)
class InProgress:
    attempt_id: Any
    remaining_seconds: int
    end_at: Optional[datetime] = None
    started_at: Optional[str] = None


@dataclass(frozen=True)
class Submitted:
    attempt_id: Any
    result: Dict[str, Any] = field(default_factory=dict)


AttemptState = Union[NotStarted, InProgress, Submitted]


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _now_like(reference: datetime) -> datetime:
    # backend timestamps are usually naive local time
    if reference.tzinfo is None:
        return datetime.now()
    return datetime.now(timezone.utc)


def _now(clock: Optional[Clock], reference: datetime) -> datetime:
    now = clock() if clock is not None else _now_like(reference)
    if now.tzinfo is None and reference.tzinfo is not None:
        now = now.replace(tzinfo=reference.tzinfo)
    elif now.tzinfo is not None and reference.tzinfo is None:
        now = now.replace(tzinfo=None)
    return now


def hard_deadline_passed(end_at: Any, now: Optional[datetime] = None) -> bool:
    """True from end_at + 10 minutes on; unknown end_at -> False."""
    end = parse_datetime(end_at)
    if end is None:
        return False
    current = _now(lambda: now, end) if now is not None else _now_like(end)
    return current >= end + timedelta(seconds=LATE_GRACE_SECONDS)


def seconds_until(end_at: Any, now: Optional[datetime] = None) -> Optional[int]:
    end = parse_datetime(end_at)
    if end is None:
        return None
    current = _now(lambda: now, end) if now is not None else _now_like(end)
    return int((end - current).total_seconds() // 1)


def is_time_over(remaining_seconds: Optional[int]) -> bool:
    return remaining_seconds is not None and remaining_seconds <= 0


def is_hard_deadline_over(remaining_seconds: Optional[int]) -> bool:
    return remaining_seconds is not None and remaining_seconds <= -LATE_GRACE_SECONDS


def _coerce_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ExamDetailController:
    """Exam detail page: completion gating, result backfill, start / resume."""

    def __init__(
        self,
        api: AssessmentApi,
        storage: ExamAttemptStorage,
        session_store: AttemptSessionStore,
        exam_id: Any,
        *,
        course_id: Any = None,
        clock: Optional[Clock] = None,
    ):
        self.api = api
        self.storage = storage
        self.session_store = session_store
        self.exam_id = exam_id
        self.course_id = course_id
        self.clock = clock

        self.exam: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self.loading = False

        self.local_result: Optional[Dict[str, Any]] = None
        self.local_in_progress: Optional[Dict[str, Any]] = None
        self._refresh_local()
        self._unsubscribe = storage.subscribe(self._refresh_local)

    def _refresh_local(self) -> None:
        self.local_result = self.storage.get_result(self.exam_id)
        self.local_in_progress = self.storage.get_in_progress(self.exam_id)

    def close(self) -> None:
        self._unsubscribe()

    async def __aenter__(self) -> "ExamDetailController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    @property
    def title(self) -> str:
        return (self.exam or {}).get("title") or "퀴즈/시험"

    @property
    def state(self) -> AttemptState:
        if self.local_result:
            return Submitted(self.local_result.get("attemptId"), self.local_result)
        meta = self.local_in_progress or {}
        if meta.get("attemptId"):
            return InProgress(
                attempt_id=meta["attemptId"],
                remaining_seconds=_coerce_int(meta.get("remainingSeconds")) or 0,
                end_at=parse_datetime(meta.get("endAt")),
                started_at=meta.get("startedAt"),
            )
        return NotStarted()

    @property
    def hard_deadline_passed(self) -> bool:
        end_at = (self.exam or {}).get("endAt")
        now = self.clock() if self.clock is not None else None
        return hard_deadline_passed(end_at, now)

    @property
    def deadline_closed(self) -> bool:
        """Past the exam's hard deadline, or for a started attempt past its own."""
        if self.hard_deadline_passed:
            return True
        state = self.state
        if isinstance(state, InProgress):
            now = self.clock() if self.clock is not None else None
            return hard_deadline_passed(state.end_at, now)
        return False

    @property
    def can_start(self) -> bool:
        if isinstance(self.state, Submitted):
            return False
        return not self.deadline_closed

    @property
    def action_label(self) -> str:
        state = self.state
        if isinstance(state, Submitted):
            return "응시 완료"
        if isinstance(state, InProgress):
            return "응시 마감" if self.deadline_closed else "응시 이어하기"
        return "응시 시작"

    async def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            response = await self.api.get_student_exam_detail(self.exam_id)
            self.exam = response_data(response) or None
        except ApiError as exc:
            logger.warning("exam %s detail failed: %r", self.exam_id, exc)
            self.error = error_message(exc, "상세 정보를 불러오는데 실패했습니다.")
            self.exam = None
        finally:
            self.loading = False

        await self.backfill_result()

    async def backfill_result(self) -> None:
        """Fill the result cache from the server when it is empty here (e.g. another browser)."""
        if self.local_result:
            return
        try:
            response = await self.api.get_my_exam_result(self.exam_id)
        except ApiError as exc:
            # not attempted yet is the common case
            logger.debug("exam %s has no server result: %r", self.exam_id, exc)
            return

        data = response_data(response)
        if not data:
            return
        self.storage.set_result(
            self.exam_id,
            {
                **data,
                "examId": self.exam_id,
                "examType": (self.exam or {}).get("type"),
                "cachedAt": now_iso(),
            },
        )

    async def start(self) -> Optional[Any]:
        """Start (or resume) the attempt; returns the attempt id, None when refused."""
        state = self.state
        if isinstance(state, Submitted):
            self.error = "이미 응시를 완료한 시험/퀴즈입니다."
            return None

        if isinstance(state, InProgress):
            if self.deadline_closed:
                self.error = HARD_DEADLINE_MESSAGE
                return None
            # resume without a server call
            self.session_store.set(state.attempt_id, self.local_in_progress)
            return state.attempt_id

        if self.hard_deadline_passed:
            self.error = START_BLOCKED_MESSAGE
            return None

        try:
            response = await self.api.start_exam_attempt(self.exam_id)
        except ApiError as exc:
            logger.warning("exam %s start failed: %r", self.exam_id, exc)
            self.error = error_message(exc, "응시 시작에 실패했습니다.")
            return None

        attempt = response_data(response) or {}
        attempt_id = attempt.get("attemptId")
        if not attempt_id:
            self.error = "응시 시작에 실패했습니다. (attemptId 없음)"
            return None

        meta = {
            "courseId": self.course_id,
            "examId": self.exam_id,
            "startedAt": attempt.get("startedAt"),
            "endAt": attempt.get("endAt"),
            "remainingSeconds": attempt.get("remainingSeconds"),
        }
        self.session_store.set(attempt_id, meta)
        self.storage.set_in_progress(self.exam_id, {**meta, "attemptId": attempt_id, "cachedAt": now_iso()})
        logger.info("exam %s attempt %s started", self.exam_id, attempt_id)
        return attempt_id


class ExamAttemptSession:
    """One attempt being answered: countdown, answers, submit."""

    def __init__(
        self,
        api: AssessmentApi,
        storage: ExamAttemptStorage,
        session_store: AttemptSessionStore,
        attempt_id: Any,
        *,
        exam_id: Any = None,
        course_id: Any = None,
        clock: Optional[Clock] = None,
    ):
        self.api = api
        self.storage = storage
        self.session_store = session_store
        self.attempt_id = attempt_id
        self.exam_id = exam_id
        self.course_id = course_id
        self.clock = clock

        self.state: AttemptState = NotStarted()
        self.exam: Optional[Dict[str, Any]] = None
        self.answers: Dict[str, Any] = {}
        self.error: Optional[str] = None
        self.loading = False
        self.submitting = False
        self._timer: Optional[asyncio.Task] = None

    # ---- rehydration ----

    def _find_meta(self) -> Optional[Dict[str, Any]]:
        meta = self.session_store.get(self.attempt_id)
        if meta:
            return meta
        if self.exam_id is not None:
            cached = self.storage.get_in_progress(self.exam_id)
            if cached and str(cached.get("attemptId")) == str(self.attempt_id):
                return cached
        return None

    def restore(self) -> bool:
        """Rebuild state after a reload. False when the exam id cannot be recovered."""
        meta = self._find_meta() or {}
        self.exam_id = self.exam_id or meta.get("examId")
        self.course_id = self.course_id or meta.get("courseId")
        if not self.exam_id:
            self.error = "응시 정보를 복구할 수 없습니다. (examId 없음)"
            return False
        if meta and self.session_store.get(self.attempt_id) is None:
            # reopened from the in-progress cache: re-seed the tab meta
            self.session_store.set(self.attempt_id, meta)
        answers = meta.get("answers")
        self.answers = dict(answers) if isinstance(answers, dict) else {}

        cached_result = self.storage.get_result(self.exam_id)
        if cached_result and str(cached_result.get("attemptId", self.attempt_id)) == str(self.attempt_id):
            self.state = Submitted(self.attempt_id, cached_result)
            return True

        end_at = parse_datetime(meta.get("endAt"))
        remaining = seconds_until(end_at, self.clock() if self.clock else None) if end_at else None
        if remaining is None:
            remaining = _coerce_int(meta.get("remainingSeconds"))
        if remaining is not None:
            self.state = InProgress(
                attempt_id=self.attempt_id,
                remaining_seconds=remaining,
                end_at=end_at,
                started_at=meta.get("startedAt"),
            )
        return True

    async def load_exam(self) -> None:
        if not self.exam_id:
            return
        self.loading = True
        self.error = None
        try:
            response = await self.api.get_student_exam_detail(self.exam_id)
            self.exam = response_data(response) or None
        except ApiError as exc:
            logger.warning("exam %s detail failed: %r", self.exam_id, exc)
            self.error = error_message(exc, "시험/퀴즈 정보를 불러오는데 실패했습니다.")
            self.exam = None
        finally:
            self.loading = False

    # ---- derived ----

    @property
    def title(self) -> str:
        return (self.exam or {}).get("title") or "시험/퀴즈"

    @property
    def questions(self) -> List[Dict[str, Any]]:
        return normalize_question_data((self.exam or {}).get("questionData"))["questions"]

    @property
    def is_quiz(self) -> bool:
        return str((self.exam or {}).get("type") or "").upper() == "QUIZ"

    @property
    def has_unsupported_question_type(self) -> bool:
        return has_unsupported_question_type(self.questions)

    @property
    def remaining_seconds(self) -> Optional[int]:
        return self.state.remaining_seconds if isinstance(self.state, InProgress) else None

    @property
    def is_time_over(self) -> bool:
        return is_time_over(self.remaining_seconds)

    @property
    def hard_deadline_over(self) -> bool:
        return is_hard_deadline_over(self.remaining_seconds)

    @property
    def read_only(self) -> bool:
        return not isinstance(self.state, InProgress) or self.is_time_over

    @property
    def result(self) -> Optional[Dict[str, Any]]:
        return self.state.result if isinstance(self.state, Submitted) else None

    def result_summary(self) -> str:
        result = self.result
        if result is None:
            return ""
        if not self.is_quiz or result.get("score") is None:
            return "제출이 완료되었습니다. (채점은 추후 반영됩니다)"
        text = f"제출이 완료되었습니다. 점수: {result['score']}"
        if result.get("isLate"):
            rate = result.get("latePenaltyRate")
            rate = LATE_PENALTY_RATE if rate is None else float(rate)
            text += f" (지각 제출 {round(rate * 100)}% 감점 적용)"
        return text

    # ---- countdown ----

    def tick(self) -> None:
        # keeps going below zero for the grace window
        if isinstance(self.state, InProgress):
            self.state = replace(self.state, remaining_seconds=self.state.remaining_seconds - 1)

    async def run_timer(self, interval: float = 1.0) -> None:
        while isinstance(self.state, InProgress):
            await asyncio.sleep(interval)
            self.tick()

    def start_timer(self, interval: float = 1.0) -> asyncio.Task:
        self.stop_timer()
        self._timer = asyncio.ensure_future(self.run_timer(interval))
        return self._timer

    def stop_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    # ---- answers / submit ----

    def set_answer(self, qid: str, value: Any) -> bool:
        if self.read_only:
            return False
        self.answers[str(qid)] = value
        return True

    def save_answers(self) -> None:
        """Keep the draft answers in the tab meta so they survive a reload."""
        if isinstance(self.state, InProgress):
            self.session_store.update(self.attempt_id, answers=dict(self.answers))

    def _log_drift(self, state: InProgress) -> None:
        if state.end_at is None:
            return
        expected = seconds_until(state.end_at, self.clock() if self.clock else None)
        drift = state.remaining_seconds - expected
        if abs(drift) >= DRIFT_WARNING_SECONDS:
            logger.warning(
                "attempt %s countdown drifted %ss from server endAt (local=%s, endAt=%s)",
                self.attempt_id,
                drift,
                state.remaining_seconds,
                expected,
            )

    async def submit(self) -> bool:
        state = self.state
        if self.submitting:
            return False
        if isinstance(state, Submitted):
            self.error = "이미 제출된 응시입니다."
            return False
        if not isinstance(state, InProgress):
            self.error = "진행 중인 응시가 없습니다."
            return False

        # grace check and submit are one decision
        if is_hard_deadline_over(state.remaining_seconds):
            self.error = HARD_DEADLINE_MESSAGE
            return False

        self.submitting = True
        self.error = None
        try:
            response = await self.api.submit_exam_attempt(self.attempt_id, self.answers)
        except ApiError as exc:
            logger.warning("attempt %s submit failed: %r", self.attempt_id, exc)
            self.error = error_message(exc, "제출에 실패했습니다.")
            return False
        finally:
            self.submitting = False

        if isinstance(response, dict) and response.get("success") is False:
            self.error = response_message(response, "제출에 실패했습니다.")
            return False

        result = (response_data(response) if is_success(response) else None) or {"ok": True}
        self._log_drift(state)
        self.state = Submitted(self.attempt_id, result)
        self.stop_timer()

        self.storage.set_result(
            self.exam_id,
            {
                **result,
                "attemptId": result.get("attemptId", self.attempt_id),
                "examId": self.exam_id,
                "courseId": self.course_id,
                "examType": (self.exam or {}).get("type"),
                "cachedAt": now_iso(),
            },
        )
        self.storage.clear_in_progress(self.exam_id)
        self.session_store.remove(self.attempt_id)
        logger.info("attempt %s submitted (late=%s)", self.attempt_id, bool(result.get("isLate")))
        return True
