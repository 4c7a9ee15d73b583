"""Professor exam / quiz form: validation and request payload.

Quizzes take MCQ questions only and go to the QUIZ board; every other type
goes to the EXAM board.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from utils.exam import normalize_question_data

EXAM_FORM_TYPES = ("MIDTERM", "FINAL", "REGULAR")


class ExamFormError(ValueError):
    """Form input the backend would refuse; the message is user facing."""


def board_type(is_quiz: bool) -> str:
    return "QUIZ" if is_quiz else "EXAM"


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _validate_questions(questions: List[Dict[str, Any]], is_quiz: bool) -> None:
    if not questions:
        raise ExamFormError("문항을 최소 1개 이상 추가해주세요.")

    for number, q in enumerate(questions, start=1):
        if not q.get("prompt"):
            raise ExamFormError(f"{number}번 문항 문제 내용을 입력해주세요.")
        if not _int(q.get("points")) > 0:
            raise ExamFormError(f"{number}번 문항 배점을 1점 이상으로 입력해주세요.")

        q_type = str(q.get("type") or "MCQ").upper()
        if is_quiz and q_type != "MCQ":
            raise ExamFormError(f"{number}번 문항: 퀴즈는 객관식(MCQ)만 허용됩니다.")

        if q_type == "MCQ":
            choices = q.get("choices")
            if not isinstance(choices, list) or len([c for c in choices if str(c).strip()]) < 2:
                raise ExamFormError(f"{number}번 객관식 문항의 보기를 최소 2개 이상 입력해주세요.")
            answer = q.get("correctChoiceIndex")
            try:
                answer = int(answer)
            except (TypeError, ValueError):
                raise ExamFormError(f"{number}번 문항 정답 번호가 올바르지 않습니다.") from None
            if answer < 0 or answer >= len(choices):
                raise ExamFormError(f"{number}번 문항 정답 번호가 보기 범위를 벗어났습니다.")
        elif q_type != "SUBJECTIVE":
            raise ExamFormError(f"{number}번 문항: 지원하지 않는 문항 타입({q_type})입니다.")


def _clean_question(q: Dict[str, Any], is_quiz: bool) -> Dict[str, Any]:
    q_id = q.get("id") or uuid.uuid4().hex[:12]
    prompt = q.get("prompt") or ""
    points = _int(q.get("points"))
    if not is_quiz and str(q.get("type") or "").upper() == "SUBJECTIVE":
        return {"id": q_id, "type": "SUBJECTIVE", "prompt": prompt, "points": points}
    return {
        "id": q_id,
        "type": "MCQ",
        "prompt": prompt,
        "choices": list(q.get("choices") or []),
        "correctChoiceIndex": _int(q.get("correctChoiceIndex")),
        "points": points,
    }


def build_exam_payload(form: Dict[str, Any], course_id: Any, is_quiz: bool) -> Dict[str, Any]:
    """Validated create/update body. Raises ExamFormError on the first bad field."""
    title = (form.get("title") or "").strip()
    if not title:
        raise ExamFormError("제목을 입력해주세요.")
    start_at = (form.get("startAt") or "").strip()
    if not start_at:
        raise ExamFormError("시작 시간을 입력해주세요.")
    duration = _int(form.get("durationMinutes"))
    if duration < 1:
        raise ExamFormError("제한시간(분)을 올바르게 입력해주세요.")

    exam_type = "QUIZ" if is_quiz else str(form.get("type") or "MIDTERM").upper()
    if not is_quiz and exam_type == "QUIZ":
        raise ExamFormError("시험(EXAM)에서는 type=QUIZ를 사용할 수 없습니다.")

    questions = normalize_question_data(form.get("questionData"))["questions"]
    _validate_questions(questions, is_quiz)
    cleaned = [_clean_question(q, is_quiz) for q in questions]
    points_sum = sum(q["points"] for q in cleaned)

    is_online = bool(form.get("isOnline"))
    location: Optional[str] = (form.get("location") or "").strip() or ("온라인" if is_online else "")

    # datetime-local inputs omit seconds
    if len(start_at) == 16:
        start_at += ":00"

    return {
        "courseId": _int(course_id),
        "title": title,
        "content": (form.get("content") or "").strip(),
        "type": exam_type,
        "startAt": start_at,
        "durationMinutes": duration,
        "totalScore": points_sum or _int(form.get("totalScore")),
        "isOnline": is_online,
        "location": location,
        "instructions": (form.get("instructions") or "").strip(),
        "questionCount": len(cleaned),
        "passingScore": 0 if is_quiz else _int(form.get("passingScore")),
        "questionData": {"questions": cleaned},
    }
