from flask import current_app, flash, render_template, request
from flask_login import current_user, login_required

from . import main_bp
from routes.helpers import backend, session_expired
from services.course_api import CourseApi
from services.my_courses import MyCoursesLoader
from utils.schedule import format_schedule_time
from utils.timetable import build_timetable, timetable_rows


async def _load_my_courses():
    force = request.args.get("refresh") == "1"
    async with backend() as client:
        loader = MyCoursesLoader(CourseApi(client), current_app.extensions["my_courses_cache"])
        result = await loader.load(current_user.id, force=force)
    if loader.error:
        flash(loader.error, "error")
    return client, result


@main_bp.route("/my-courses")
@login_required
async def my_courses():
    client, result = await _load_my_courses()
    if client.unauthorized:
        return session_expired()
    return render_template(
        "my_courses.html",
        result=result,
        format_schedule_time=format_schedule_time,
    )


@main_bp.route("/timetable")
@login_required
async def timetable():
    client, result = await _load_my_courses()
    if client.unauthorized:
        return session_expired()
    grid = build_timetable(result.courses)
    return render_template(
        "timetable.html",
        result=result,
        timetable=timetable_rows(grid),
        timetable_days=list(grid.columns),
    )
