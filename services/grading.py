"""Professor-side attempt review and grading.

Quizzes are auto-graded by the server. The MCQ score computed here is a
read-only estimate for display: when the server has a score, that score is
shown and kept, and a disagreement is only logged.
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from services.api_client import ApiError, error_message, response_data
from services.assessment_api import AssessmentApi
from utils.exam import normalize_answer_data, normalize_question_data, question_id

logger = logging.getLogger(__name__)

ATTEMPT_STATUSES = ("ALL", "SUBMITTED", "IN_PROGRESS")


def _number(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _type(question: Any) -> str:
    return str((question or {}).get("type") or "").upper()


def compute_mcq_score(questions: List[Dict[str, Any]], answers: Mapping[str, Any]) -> float:
    """Sum of `points` over MCQ questions whose answer equals correctChoiceIndex."""
    total = 0.0
    answers = answers if isinstance(answers, Mapping) else {}
    for index, question in enumerate(questions or []):
        if _type(question) != "MCQ":
            continue
        correct = _number(question.get("correctChoiceIndex"))
        chosen = _number(answers.get(question_id(question, index)))
        if correct is not None and chosen is not None and correct == chosen:
            total += _number(question.get("points")) or 0
    return total


def subjective_max_score(questions: List[Dict[str, Any]]) -> float:
    return sum(_number(q.get("points")) or 0 for q in questions or [] if _type(q) == "SUBJECTIVE")


def subjective_given_score(questions: List[Dict[str, Any]], scores: Mapping[str, Any]) -> float:
    # each entry clamped to [0, points]
    total = 0.0
    for index, question in enumerate(questions or []):
        if _type(question) != "SUBJECTIVE":
            continue
        maximum = max(0.0, _number(question.get("points")) or 0)
        given = _number(scores.get(question_id(question, index))) or 0
        total += min(max(0.0, given), maximum)
    return total


def validate_grade(score: Any, total_score: Any = None) -> Optional[str]:
    """Error message for an unacceptable grade, None when it can be sent."""
    number = _number(score)
    if number is None or number < 0:
        return "총점 계산값이 올바르지 않습니다."
    maximum = _number(total_score)
    if maximum is not None and number > maximum:
        return f"총점이 최대점수({total_score})를 초과했습니다."
    return None


@dataclass(frozen=True)
class ScoreEstimate:
    attempt_id: Any
    server_score: Optional[float]
    estimate: float

    @property
    def mismatch(self) -> bool:
        return self.server_score is not None and not math.isclose(self.server_score, self.estimate)

    @property
    def display_score(self) -> float:
        return self.server_score if self.server_score is not None else self.estimate


def estimate_attempt(attempt_id: Any, detail: Optional[Dict[str, Any]]) -> ScoreEstimate:
    detail = detail or {}
    questions = normalize_question_data(detail.get("questionData"))["questions"]
    answers = normalize_answer_data(detail.get("answerData"))["answers"]
    estimate = ScoreEstimate(attempt_id, _number(detail.get("score")), compute_mcq_score(questions, answers))
    if estimate.mismatch:
        logger.warning(
            "attempt %s: server score %s differs from MCQ estimate %s",
            attempt_id,
            estimate.server_score,
            estimate.estimate,
        )
    return estimate


class AttemptGrading:
    """Attempt list + detail + grade save for one exam."""

    def __init__(self, api: AssessmentApi, exam_id: Any, *, exam_type: Optional[str] = None, total_score: Any = None):
        self.api = api
        self.exam_id = exam_id
        self.is_quiz = str(exam_type or "").upper() == "QUIZ"
        self.total_score = total_score

        self.status = "ALL"
        self.items: List[Dict[str, Any]] = []
        self.error: Optional[str] = None
        self.detail: Optional[Dict[str, Any]] = None
        self.detail_error: Optional[str] = None
        self.selected_attempt_id: Any = None
        self.estimates: Dict[Any, ScoreEstimate] = {}

    @property
    def questions(self) -> List[Dict[str, Any]]:
        return normalize_question_data((self.detail or {}).get("questionData"))["questions"]

    @property
    def answers(self) -> Dict[str, Any]:
        return normalize_answer_data((self.detail or {}).get("answerData"))["answers"]

    async def fetch_list(self, status: Optional[str] = None) -> None:
        if status:
            self.status = status if status in ATTEMPT_STATUSES else "ALL"
        try:
            response = await self.api.get_professor_exam_attempts(self.exam_id, self.status)
        except ApiError as exc:
            logger.warning("exam %s attempt list failed: %r", self.exam_id, exc)
            self.error = error_message(exc, "응시자 목록을 불러오는데 실패했습니다.")
            self.items = []
            return
        self.error = None
        data = response_data(response)
        self.items = data if isinstance(data, list) else []

    async def fetch_detail(self, attempt_id: Any) -> None:
        if attempt_id is None or attempt_id == "":
            return
        try:
            response = await self.api.get_professor_exam_attempt_result(attempt_id)
        except ApiError as exc:
            logger.warning("attempt %s detail failed: %r", attempt_id, exc)
            self.detail_error = error_message(exc, "응시 상세를 불러오는데 실패했습니다.")
            self.detail = None
            return

        self.detail_error = None
        self.detail = response_data(response) or None
        self.selected_attempt_id = attempt_id
        if self.is_quiz and self.detail:
            self.estimates[attempt_id] = estimate_attempt(attempt_id, self.detail)

    async def fetch_quiz_scores(self) -> None:
        """Estimate every listed quiz attempt not estimated yet; failures are skipped."""
        if not self.is_quiz:
            return
        targets = [
            item.get("attemptId")
            for item in self.items
            if item.get("attemptId") not in (None, "") and item.get("attemptId") not in self.estimates
        ]
        if not targets:
            return

        async def one(attempt_id: Any) -> Optional[ScoreEstimate]:
            try:
                response = await self.api.get_professor_exam_attempt_result(attempt_id)
            except ApiError as exc:
                logger.debug("attempt %s estimate skipped: %r", attempt_id, exc)
                return None
            return estimate_attempt(attempt_id, response_data(response))

        for estimate in await asyncio.gather(*(one(a) for a in targets)):
            if estimate is not None:
                self.estimates[estimate.attempt_id] = estimate

    def computed_total(self, subjective_scores: Mapping[str, Any]) -> float:
        return compute_mcq_score(self.questions, self.answers) + subjective_given_score(
            self.questions, subjective_scores
        )

    async def save_grade(self, subjective_scores: Mapping[str, Any], feedback: Optional[str] = None) -> bool:
        # quizzes are scored by the server
        if self.is_quiz or not self.selected_attempt_id:
            return False

        score = self.computed_total(subjective_scores)
        problem = validate_grade(score, self.total_score)
        if problem:
            self.detail_error = problem
            return False

        try:
            await self.api.grade_exam_attempt(
                self.selected_attempt_id, {"score": score, "feedback": feedback or None}
            )
        except ApiError as exc:
            logger.warning("attempt %s grade failed: %r", self.selected_attempt_id, exc)
            self.detail_error = error_message(exc, "채점 저장에 실패했습니다.")
            return False

        logger.info("attempt %s graded: %s", self.selected_attempt_id, score)
        await self.fetch_detail(self.selected_attempt_id)
        await self.fetch_list()
        return True
