"""Exam / quiz endpoints.

Student:
  GET  /api/v1/exams?courseId=&examType=
  GET  /api/v1/exams/{examId}
  GET  /api/v1/exams/{examId}/my-result
  POST /api/v1/exams/{examId}/start
  POST /api/v1/exams/results/{attemptId}/submit
Professor:
  GET  /api/v1/professor/exams?courseId=&examType=
  GET  /api/v1/professor/exams/{examId}
  GET  /api/v1/professor/exams/{examId}/attempts?status=
  GET  /api/v1/professor/exams/results/{attemptId}
  POST /api/v1/boards/{boardType}/exams            (boardType: QUIZ|EXAM)
  PUT  /api/v1/exams/{examId}/edit
  DELETE /api/v1/exams/{examId}/delete
  PUT  /api/v1/exams/results/{attemptId}/grade

Most calls also try the legacy /api/... path when the v1 path answers 404.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from services.api_client import ApiClient

EXAM_TYPES = ("QUIZ", "MIDTERM", "FINAL", "REGULAR")


def _require(value: Any, name: str) -> Any:
    if value is None or value == "":
        raise ValueError(f"{name} is required")
    return value


def _list_params(course_id: Any, exam_type: Optional[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if course_id is not None and course_id != "":
        params["courseId"] = str(course_id)
    if exam_type:
        params["examType"] = str(exam_type)
    return params


class AssessmentApi:
    def __init__(self, client: ApiClient):
        self.client = client

    # ---- student ----

    async def get_student_exams(self, course_id: Any = None, exam_type: Optional[str] = None) -> Dict[str, Any]:
        params = _list_params(course_id, exam_type)
        return await self.client.get_with_fallback(["/api/v1/exams", "/api/exams"], params=params)

    async def get_student_exam_detail(self, exam_id: Any) -> Dict[str, Any]:
        _require(exam_id, "examId")
        return await self.client.get_with_fallback([f"/api/v1/exams/{exam_id}", f"/api/exams/{exam_id}"])

    async def get_my_exam_result(self, exam_id: Any) -> Dict[str, Any]:
        _require(exam_id, "examId")
        return await self.client.get_with_fallback([f"/api/v1/exams/{exam_id}/my-result"])

    async def start_exam_attempt(self, exam_id: Any) -> Dict[str, Any]:
        _require(exam_id, "examId")
        return await self.client.post_with_fallback(
            [f"/api/v1/exams/{exam_id}/start", f"/api/exams/{exam_id}/start"]
        )

    async def submit_exam_attempt(self, attempt_id: Any, answers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        _require(attempt_id, "attemptId")
        return await self.client.post_with_fallback(
            [
                f"/api/v1/exams/results/{attempt_id}/submit",
                f"/api/exams/results/{attempt_id}/submit",
            ],
            json={"answers": answers or {}},
        )

    # ---- professor ----

    async def get_professor_exams(self, course_id: Any = None, exam_type: Optional[str] = None) -> Dict[str, Any]:
        params = _list_params(course_id, exam_type)
        return await self.client.get_with_fallback(
            ["/api/v1/professor/exams", "/api/professor/exams"], params=params
        )

    async def get_professor_exam_detail(self, exam_id: Any) -> Dict[str, Any]:
        _require(exam_id, "examId")
        return await self.client.get_with_fallback(
            [f"/api/v1/professor/exams/{exam_id}", f"/api/professor/exams/{exam_id}"]
        )

    async def get_professor_exam_attempts(self, exam_id: Any, status: Optional[str] = None) -> Dict[str, Any]:
        # status: ALL | SUBMITTED | IN_PROGRESS
        _require(exam_id, "examId")
        params = {"status": str(status)} if status else None
        return await self.client.get_with_fallback(
            [f"/api/v1/professor/exams/{exam_id}/attempts"], params=params
        )

    async def get_professor_exam_attempt_result(self, attempt_id: Any) -> Dict[str, Any]:
        _require(attempt_id, "attemptId")
        return await self.client.get_with_fallback([f"/api/v1/professor/exams/results/{attempt_id}"])

    async def grade_exam_attempt(self, attempt_id: Any, payload: Dict[str, Any]) -> Dict[str, Any]:
        # payload: {score, feedback}
        _require(attempt_id, "attemptId")
        return await self.client.put_with_fallback(
            [
                f"/api/v1/exams/results/{attempt_id}/grade",
                f"/api/exams/results/{attempt_id}/grade",
            ],
            json=payload,
        )

    async def create_exam(self, board_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        _require(board_type, "boardType")
        return await self.client.post_with_fallback(
            [
                f"/api/v1/boards/{board_type}/exams",
                f"/api/v1/boards/{str(board_type).lower()}/exams",
            ],
            json=payload,
        )

    async def update_exam(self, exam_id: Any, payload: Dict[str, Any]) -> Dict[str, Any]:
        _require(exam_id, "examId")
        return await self.client.put_with_fallback(
            [f"/api/v1/exams/{exam_id}/edit", f"/api/exams/{exam_id}/edit"], json=payload
        )

    async def delete_exam(self, exam_id: Any) -> Dict[str, Any]:
        _require(exam_id, "examId")
        return await self.client.delete_with_fallback(
            [f"/api/v1/exams/{exam_id}/delete", f"/api/exams/{exam_id}/delete"]
        )
