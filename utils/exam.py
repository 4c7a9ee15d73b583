from __future__ import annotations

import json
from typing import Any, Dict, List

SUPPORTED_QUESTION_TYPES = {"MCQ", "SUBJECTIVE"}


def _parse_json_object(raw: Any) -> Dict[str, Any]:
    # questionData / answerData come either as an object or as a JSON string
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return {}
        try:
            parsed = json.loads(text)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def normalize_question_data(question_data: Any) -> Dict[str, Any]:
    data = _parse_json_object(question_data)
    questions = data.get("questions")
    data["questions"] = questions if isinstance(questions, list) else []
    return data


def normalize_answer_data(answer_data: Any) -> Dict[str, Any]:
    data = _parse_json_object(answer_data)
    answers = data.get("answers")
    data["answers"] = answers if isinstance(answers, dict) else {}
    return data


def question_id(question: Dict[str, Any], index: int) -> str:
    # questions without an id are addressed by position ("q-1", "q-2", ...)
    qid = question.get("id") if isinstance(question, dict) else None
    return str(qid) if qid is not None else f"q-{index + 1}"


def has_unsupported_question_type(questions: List[Dict[str, Any]]) -> bool:
    return any(str((q or {}).get("type") or "").upper() not in SUPPORTED_QUESTION_TYPES for q in questions)


def format_seconds(seconds: Any) -> str:
    """Countdown label "mm:ss"; negative values show as 00:00."""
    try:
        sec = max(0, int(seconds or 0))
    except (TypeError, ValueError):
        sec = 0
    return f"{sec // 60:02d}:{sec % 60:02d}"
