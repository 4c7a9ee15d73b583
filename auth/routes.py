import logging

from flask import Blueprint, render_template, request, redirect, url_for, flash, session
from flask_login import current_user, login_user, logout_user, login_required
from extensions import db
from models.user import User
from routes.helpers import backend, clear_tokens
from services.api_client import ApiError, error_message
from services.auth_api import AuthApi

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.route("/login", methods=["GET", "POST"])
async def login():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    if request.method == "POST":
        email = (request.form.get("email") or "").strip()
        password = request.form.get("password") or ""

        if not email or not password:
            flash("이메일과 비밀번호를 입력해주세요.", "error")
            return render_template("login.html", email=email)

        try:
            async with backend() as client:
                payload = await AuthApi(client).login(email, password)
        except ApiError as exc:
            logger.info("login failed for %s: %r", email, exc)
            flash(error_message(exc, "로그인에 실패했습니다."), "error")
            return render_template("login.html", email=email)

        if not isinstance(payload, dict) or not payload.get("accessToken"):
            flash("로그인 응답이 올바르지 않습니다.", "error")
            return render_template("login.html", email=email)

        # tokens ride in the signed session cookie for the session lifetime
        session.permanent = True
        session["access_token"] = payload["accessToken"]
        session["refresh_token"] = payload.get("refreshToken")

        try:
            user = User.sync_from_login(payload)
        except ValueError:
            clear_tokens()
            flash("로그인 응답이 올바르지 않습니다.", "error")
            return render_template("login.html", email=email)
        db.session.commit()

        login_user(user, remember=True)
        logger.info("user %s logged in", user.backend_id)
        return redirect(url_for("main.dashboard"))

    return render_template("login.html")


@auth_bp.route("/logout", methods=["POST"])
@login_required
async def logout():
    try:
        async with backend() as client:
            await AuthApi(client).logout()
    except ApiError as exc:
        # local logout goes ahead regardless
        logger.info("backend logout failed: %r", exc)

    clear_tokens()
    logout_user()
    flash("로그아웃되었습니다.", "success")
    return redirect(url_for("auth.login"))
