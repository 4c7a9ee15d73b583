import logging

from flask import flash, redirect, render_template, request, url_for
from flask_login import login_required

from . import main_bp
from routes.helpers import attempt_store, backend, exam_storage, session_expired
from services.api_client import ApiError, error_message, response_data
from services.assessment_api import AssessmentApi
from services.exam_attempt import ExamAttemptSession, ExamDetailController
from utils.exam import format_seconds, question_id

logger = logging.getLogger(__name__)


@main_bp.route("/courses/<int:course_id>/exams")
@login_required
async def course_exams(course_id: int):
    exam_type = request.args.get("type") or None
    exams, error = [], None
    async with backend() as client:
        try:
            response = await AssessmentApi(client).get_student_exams(course_id, exam_type)
            data = response_data(response)
            exams = data if isinstance(data, list) else []
        except ApiError as exc:
            logger.warning("course %s exam list failed: %r", course_id, exc)
            error = error_message(exc, "시험/퀴즈 목록을 불러오는데 실패했습니다.")
    if client.unauthorized:
        return session_expired()

    storage = exam_storage()
    completed = {str(e.get("examId")) for e in exams if storage.get_result(e.get("examId"))}
    return render_template(
        "exam_list.html", course_id=course_id, exams=exams, completed=completed, error=error
    )


@main_bp.route("/courses/<int:course_id>/exams/<int:exam_id>")
@login_required
async def exam_detail(course_id: int, exam_id: int):
    async with backend() as client:
        async with ExamDetailController(
            AssessmentApi(client), exam_storage(), attempt_store(), exam_id, course_id=course_id
        ) as detail:
            await detail.load()
    if client.unauthorized:
        return session_expired()
    return render_template("exam_detail.html", detail=detail, course_id=course_id)


@main_bp.route("/courses/<int:course_id>/exams/<int:exam_id>/start", methods=["POST"])
@login_required
async def start_exam(course_id: int, exam_id: int):
    async with backend() as client:
        async with ExamDetailController(
            AssessmentApi(client), exam_storage(), attempt_store(), exam_id, course_id=course_id
        ) as detail:
            await detail.load()
            attempt_id = await detail.start()
    if client.unauthorized:
        return session_expired()

    if attempt_id is None:
        flash(detail.error or "응시 시작에 실패했습니다.", "error")
        return redirect(url_for("main.exam_detail", course_id=course_id, exam_id=exam_id))
    return redirect(url_for("main.exam_attempt", attempt_id=attempt_id))


def _attempt_session(client, attempt_id: str) -> ExamAttemptSession:
    exam_id = request.values.get("exam_id") or None
    attempt = ExamAttemptSession(
        AssessmentApi(client), exam_storage(), attempt_store(), attempt_id, exam_id=exam_id
    )
    attempt.restore()
    return attempt


def _collect_answers(attempt: ExamAttemptSession) -> None:
    for index, question in enumerate(attempt.questions):
        qid = question_id(question, index)
        raw = request.form.get(f"answer-{qid}")
        if raw is None:
            continue
        if str(question.get("type") or "").upper() == "MCQ":
            if not raw.strip().lstrip("-").isdigit():
                continue
            attempt.set_answer(qid, int(raw))
        else:
            attempt.set_answer(qid, raw)


@main_bp.route("/exams/attempts/<attempt_id>")
@login_required
async def exam_attempt(attempt_id: str):
    async with backend() as client:
        attempt = _attempt_session(client, attempt_id)
        await attempt.load_exam()
    if client.unauthorized:
        return session_expired()
    return render_template(
        "exam_attempt.html",
        attempt=attempt,
        question_id=question_id,
        format_seconds=format_seconds,
    )


@main_bp.route("/exams/attempts/<attempt_id>/save", methods=["POST"])
@login_required
async def save_exam_answers(attempt_id: str):
    async with backend() as client:
        attempt = _attempt_session(client, attempt_id)
        await attempt.load_exam()
    if client.unauthorized:
        return session_expired()

    if attempt.read_only:
        flash("시험 시간이 종료되어 답안을 수정할 수 없습니다.", "warning")
    else:
        _collect_answers(attempt)
        attempt.save_answers()
        flash("답안이 임시 저장되었습니다.", "success")
    return redirect(url_for("main.exam_attempt", attempt_id=attempt_id))


@main_bp.route("/exams/attempts/<attempt_id>/submit", methods=["POST"])
@login_required
async def submit_exam(attempt_id: str):
    async with backend() as client:
        attempt = _attempt_session(client, attempt_id)
        await attempt.load_exam()
        # late submissions keep the saved draft; the inputs are locked
        _collect_answers(attempt)
        submitted = await attempt.submit()
    if client.unauthorized:
        return session_expired()

    if submitted:
        flash(attempt.result_summary(), "success")
    else:
        if not attempt.read_only:
            attempt.save_answers()
        flash(attempt.error or "제출에 실패했습니다.", "error")
    return redirect(url_for("main.exam_attempt", attempt_id=attempt_id, exam_id=attempt.exam_id))
