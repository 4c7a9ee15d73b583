import logging

from flask import jsonify, redirect, render_template, url_for
from flask_login import current_user, login_required

from . import main_bp
from routes.helpers import backend
from services.api_client import ApiError
from services.notification_api import NotificationApi, unread_count_from

logger = logging.getLogger(__name__)


@main_bp.route("/")
def home():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))
    return redirect(url_for("auth.login"))


@main_bp.route("/dashboard")
@login_required
def dashboard():
    return render_template("dashboard.html")


@main_bp.route("/notifications/unread-count")
@login_required
async def notification_unread_count():
    # polled by the header badge (base.html)
    try:
        async with backend() as client:
            response = await NotificationApi(client).get_unread_count()
    except ApiError as exc:
        logger.debug("unread count unavailable: %r", exc)
        return jsonify({"unreadCount": 0, "ok": False})
    return jsonify({"unreadCount": unread_count_from(response), "ok": True})
