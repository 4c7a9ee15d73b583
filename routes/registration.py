from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import login_required

from . import main_bp
from routes.helpers import backend, invalidate_my_courses, session_expired
from services.course_api import CourseApi
from services.registration import ALL, CourseRegistration
from utils.credits import get_max_credits, get_remaining_credits
from utils.schedule import format_schedule_time
from utils.timetable import build_timetable, timetable_rows
from utils.transformers import COURSE_TYPE_LABELS


def _choice(value):
    value = (value or "").strip()
    return value or ALL


def _number_choice(value):
    value = (value or "").strip()
    return value if value.isdigit() else ALL


def _page(value) -> int:
    value = (value or "").strip()
    return int(value) if value.isdigit() else 0


def _back():
    # only same-site paths
    target = request.form.get("next") or ""
    if not target.startswith("/") or target.startswith("//"):
        target = url_for("main.registration")
    return redirect(target)


def _new_registration(client) -> CourseRegistration:
    return CourseRegistration(
        CourseApi(client),
        page_size=current_app.config["CATALOG_PAGE_SIZE"],
        search_debounce_seconds=current_app.config["SEARCH_DEBOUNCE_SECONDS"],
        on_enrollment_changed=invalidate_my_courses,
    )


async def _load_registration(client, args) -> CourseRegistration:
    reg = _new_registration(client)
    reg.filters.search_term = (args.get("keyword") or "").strip()
    reg.filters.department = _number_choice(args.get("department"))
    reg.filters.course_type = _choice(args.get("course_type"))
    reg.filters.credits = _number_choice(args.get("credits"))

    if await reg.start():
        page = _page(args.get("page"))
        if page:
            await reg.change_page(page)
    return reg


def _flash_toast(reg: CourseRegistration) -> None:
    if reg.toast is not None:
        flash(reg.toast.message, reg.toast.severity)
    elif reg.error:
        flash(reg.error, "error")


@main_bp.route("/registration")
@login_required
async def registration():
    async with backend() as client:
        reg = await _load_registration(client, request.args)
        reg.close()
    if client.unauthorized:
        return session_expired()

    preview = build_timetable([*reg.registered, *reg.cart])
    return render_template(
        "registration.html",
        reg=reg,
        course_types=COURSE_TYPE_LABELS,
        format_schedule_time=format_schedule_time,
        timetable=timetable_rows(preview),
        timetable_days=list(preview.columns),
        max_credits=get_max_credits(),
        remaining_credits=get_remaining_credits(reg.registered_credits),
        query=request.query_string.decode(),
    )


@main_bp.route("/registration/cart/add/<int:course_id>", methods=["POST"])
@login_required
async def add_to_cart(course_id: int):
    async with backend() as client:
        reg = await _load_registration(client, request.form)
        if reg.initial_load_complete:
            course = await reg.find_course(course_id)
            if course is None:
                flash("강의를 찾을 수 없습니다.", "error")
            else:
                await reg.add_to_cart(course)
                _flash_toast(reg)
        else:
            _flash_toast(reg)
    if client.unauthorized:
        return session_expired()
    return _back()


@main_bp.route("/registration/cart/remove/<int:item_id>", methods=["POST"])
@login_required
async def remove_from_cart(item_id: int):
    # item_id: course id or cart id
    async with backend() as client:
        reg = await _load_registration(client, request.form)
        if reg.initial_load_complete:
            await reg.remove_from_cart(item_id)
        _flash_toast(reg)
    if client.unauthorized:
        return session_expired()
    return _back()


@main_bp.route("/registration/cart/clear", methods=["GET", "POST"])
@login_required
async def clear_cart():
    if request.method == "GET":
        return render_template(
            "confirm.html",
            title="장바구니 비우기",
            message="장바구니의 모든 강의를 삭제하시겠습니까?",
            action=url_for("main.clear_cart"),
            confirm_label="비우기",
        )

    async with backend() as client:
        reg = await _load_registration(client, request.form)
        if reg.initial_load_complete:
            await reg.clear_all_carts()
        _flash_toast(reg)
    if client.unauthorized:
        return session_expired()
    return redirect(url_for("main.registration"))


@main_bp.route("/registration/confirm", methods=["POST"])
@login_required
async def confirm_registration():
    async with backend() as client:
        reg = await _load_registration(client, request.form)
        if reg.initial_load_complete:
            await reg.confirm_registration()
        _flash_toast(reg)
    if client.unauthorized:
        return session_expired()
    return _back()


@main_bp.route("/registration/enroll/<int:course_id>", methods=["GET", "POST"])
@login_required
async def enroll(course_id: int):
    async with backend() as client:
        reg = await _load_registration(client, request.form if request.method == "POST" else request.args)
        course = await reg.find_course(course_id) if reg.initial_load_complete else None
        if course is not None:
            reg.request_enroll(course)
            if request.method == "POST":
                await reg.confirm_enroll()
                _flash_toast(reg)
        else:
            flash(reg.error or "강의를 찾을 수 없습니다.", "error")
    if client.unauthorized:
        return session_expired()

    if request.method == "GET" and course is not None:
        return render_template(
            "confirm.html",
            title="수강신청 확인",
            message=f"{course.subject_name} ({course.subject_code}, {course.credits}학점)을 수강신청하시겠습니까?",
            action=url_for("main.enroll", course_id=course_id),
            confirm_label="수강신청",
        )
    return redirect(url_for("main.registration"))


@main_bp.route("/registration/cancel/<int:enrollment_id>", methods=["GET", "POST"])
@login_required
async def cancel_enrollment(enrollment_id: int):
    async with backend() as client:
        reg = await _load_registration(client, request.form if request.method == "POST" else request.args)
        enrollment = next((e for e in reg.registered if e.enrollment_id == enrollment_id), None)
        if enrollment is not None:
            reg.request_cancel(enrollment)
            if request.method == "POST":
                await reg.confirm_cancel()
                _flash_toast(reg)
        else:
            flash(reg.error or "수강신청 내역을 찾을 수 없습니다.", "error")
    if client.unauthorized:
        return session_expired()

    if request.method == "GET" and enrollment is not None:
        return render_template(
            "confirm.html",
            title="수강신청 취소",
            message=f"{enrollment.subject_name} 수강신청을 취소하시겠습니까?",
            action=url_for("main.cancel_enrollment", enrollment_id=enrollment_id),
            confirm_label="수강 취소",
        )
    return redirect(url_for("main.registration"))
