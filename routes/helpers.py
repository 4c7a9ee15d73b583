from contextlib import asynccontextmanager

from flask import current_app, flash, redirect, session, url_for
from flask_login import current_user, logout_user

from services.api_client import client_for_session
from services.exam_storage import AttemptSessionStore, ExamAttemptStorage

TOKEN_KEYS = ("access_token", "refresh_token")


@asynccontextmanager
async def backend():
    """ApiClient for the logged-in user, closed when the view is done with it."""
    client = client_for_session()
    try:
        yield client
    finally:
        await client.aclose()


def clear_tokens() -> None:
    for key in TOKEN_KEYS:
        session.pop(key, None)


def session_expired():
    # refresh failed too: drop the local login and start over
    clear_tokens()
    logout_user()
    flash("로그인이 만료되었습니다. 다시 로그인해주세요.", "error")
    return redirect(url_for("auth.login"))


def exam_storage() -> ExamAttemptStorage:
    events = current_app.extensions["exam_storage_events"].for_user(current_user.id)
    return ExamAttemptStorage(current_user.id, events)


def attempt_store() -> AttemptSessionStore:
    return AttemptSessionStore(session)


def invalidate_my_courses() -> None:
    current_app.extensions["my_courses_cache"].invalidate(current_user.id)
