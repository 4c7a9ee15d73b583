import logging

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for
from flask_login import current_user

from extensions import login_manager
from routes.helpers import backend, session_expired
from services.api_client import ApiError, error_message, response_data
from services.assessment_api import AssessmentApi
from services.exam_authoring import EXAM_FORM_TYPES, ExamFormError, board_type, build_exam_payload
from services.grading import ATTEMPT_STATUSES, AttemptGrading, subjective_max_score
from utils.exam import normalize_question_data, question_id

logger = logging.getLogger(__name__)

professor_bp = Blueprint("professor", __name__, url_prefix="/professor")


@professor_bp.before_request
def require_professor():
    if not current_user.is_authenticated:
        return login_manager.unauthorized()
    if not current_user.is_professor:
        abort(403)
    return None


@professor_bp.route("/courses/<int:course_id>/exams")
async def exams(course_id: int):
    is_quiz = request.args.get("board", "EXAM").upper() == "QUIZ"
    items, error = [], None
    async with backend() as client:
        api = AssessmentApi(client)
        try:
            if is_quiz:
                response = await api.get_professor_exams(course_id, "QUIZ")
                items = response_data(response) or []
            else:
                for exam_type in EXAM_FORM_TYPES:
                    response = await api.get_professor_exams(course_id, exam_type)
                    items.extend(response_data(response) or [])
        except ApiError as exc:
            logger.warning("course %s professor exam list failed: %r", course_id, exc)
            error = error_message(exc, "목록을 불러오는데 실패했습니다.")
    if client.unauthorized:
        return session_expired()
    return render_template(
        "professor/exams.html", course_id=course_id, items=items, is_quiz=is_quiz, error=error
    )


async def _exam_detail(api: AssessmentApi, exam_id: int):
    response = await api.get_professor_exam_detail(exam_id)
    return response_data(response) or {}


@professor_bp.route("/courses/<int:course_id>/exams/new", methods=["GET", "POST"])
@professor_bp.route("/courses/<int:course_id>/exams/<int:exam_id>/edit", methods=["GET", "POST"])
async def edit_exam(course_id: int, exam_id: int = None):
    is_quiz = (request.values.get("board") or "EXAM").upper() == "QUIZ"
    form = dict(request.form) if request.method == "POST" else {}

    async with backend() as client:
        api = AssessmentApi(client)
        try:
            if request.method == "GET" and exam_id is not None:
                form = await _exam_detail(api, exam_id)
                is_quiz = str(form.get("type") or "").upper() == "QUIZ"
            elif request.method == "POST":
                payload = build_exam_payload(form, course_id, is_quiz)
                if exam_id is None:
                    await api.create_exam(board_type(is_quiz), payload)
                else:
                    await api.update_exam(exam_id, payload)
                flash("저장되었습니다.", "success")
                return redirect(
                    url_for("professor.exams", course_id=course_id, board=board_type(is_quiz))
                )
        except ExamFormError as exc:
            flash(str(exc), "error")
        except ApiError as exc:
            logger.warning("exam save failed: %r", exc)
            flash(error_message(exc, "저장에 실패했습니다."), "error")
    if client.unauthorized:
        return session_expired()

    return render_template(
        "professor/exam_form.html",
        course_id=course_id,
        exam_id=exam_id,
        is_quiz=is_quiz,
        form=form,
        exam_types=EXAM_FORM_TYPES,
    )


@professor_bp.route("/courses/<int:course_id>/exams/<int:exam_id>/delete", methods=["GET", "POST"])
async def delete_exam(course_id: int, exam_id: int):
    if request.method == "GET":
        return render_template(
            "confirm.html",
            title="시험/퀴즈 삭제",
            message="정말 삭제하시겠습니까?",
            action=url_for("professor.delete_exam", course_id=course_id, exam_id=exam_id),
            confirm_label="삭제",
        )

    async with backend() as client:
        try:
            await AssessmentApi(client).delete_exam(exam_id)
            flash("삭제되었습니다.", "success")
        except ApiError as exc:
            logger.warning("exam %s delete failed: %r", exam_id, exc)
            flash(error_message(exc, "삭제에 실패했습니다."), "error")
    if client.unauthorized:
        return session_expired()
    return redirect(url_for("professor.exams", course_id=course_id))


async def _grading(client, exam_id: int) -> AttemptGrading:
    api = AssessmentApi(client)
    try:
        exam = await _exam_detail(api, exam_id)
    except ApiError as exc:
        logger.warning("exam %s detail failed: %r", exam_id, exc)
        exam = {}
    return AttemptGrading(api, exam_id, exam_type=exam.get("type"), total_score=exam.get("totalScore"))


@professor_bp.route("/exams/<int:exam_id>/attempts")
async def attempts(exam_id: int):
    status = request.args.get("status", "ALL").upper()
    attempt_id = request.args.get("attempt_id")
    async with backend() as client:
        grading = await _grading(client, exam_id)
        await grading.fetch_list(status)
        await grading.fetch_quiz_scores()
        if attempt_id:
            await grading.fetch_detail(attempt_id)
    if client.unauthorized:
        return session_expired()

    return render_template(
        "professor/attempts.html",
        exam_id=exam_id,
        grading=grading,
        statuses=ATTEMPT_STATUSES,
        questions=grading.questions,
        answers=grading.answers,
        subjective_max=subjective_max_score(grading.questions),
        question_id=question_id,
    )


@professor_bp.route("/exams/<int:exam_id>/attempts/<attempt_id>/grade", methods=["POST"])
async def grade(exam_id: int, attempt_id: str):
    async with backend() as client:
        grading = await _grading(client, exam_id)
        await grading.fetch_detail(attempt_id)
        questions = normalize_question_data((grading.detail or {}).get("questionData"))["questions"]
        scores = {
            question_id(q, i): request.form.get(f"score-{question_id(q, i)}")
            for i, q in enumerate(questions)
        }
        saved = await grading.save_grade(scores, request.form.get("feedback"))
    if client.unauthorized:
        return session_expired()

    if saved:
        flash("채점이 저장되었습니다.", "success")
    else:
        flash(grading.detail_error or "채점 저장에 실패했습니다.", "error")
    return redirect(url_for("professor.attempts", exam_id=exam_id, attempt_id=attempt_id))
