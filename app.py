import logging
import os
from datetime import timedelta

from flask import Flask
from config import Config
from extensions import db, login_manager
from services.exam_storage import UserStorageEvents
from services.my_courses import TTLCache


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # auth session lifetime (tokens + remember cookie)
    lifetime = timedelta(days=app.config["SESSION_LIFETIME_DAYS"])
    app.config["PERMANENT_SESSION_LIFETIME"] = lifetime
    app.config["REMEMBER_COOKIE_DURATION"] = lifetime

    # init extentions
    db.init_app(app)
    login_manager.init_app(app)

    # app-owned shared state
    app.extensions["my_courses_cache"] = TTLCache(app.config["MY_COURSES_CACHE_TTL_SECONDS"])
    app.extensions["exam_storage_events"] = UserStorageEvents()

    from models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @app.cli.command("init-db")
    def init_db():
        """Create the local cache tables (user mirror, exam caches)."""
        import models  # noqa: F401

        uri = app.config["SQLALCHEMY_DATABASE_URI"]
        if uri.startswith("sqlite:///"):
            os.makedirs(os.path.dirname(uri[len("sqlite:///"):]), exist_ok=True)
        print("DB URI:", uri)
        db.create_all()
        print("DB CREATED")

    @app.context_processor
    def inject_ui_settings():
        return {
            "notification_poll_ms": int(app.config["NOTIFICATION_POLL_SECONDS"] * 1000),
            "search_debounce_ms": int(app.config["SEARCH_DEBOUNCE_SECONDS"] * 1000),
        }

    # import and register blueprints
    from auth.routes import auth_bp
    from routes import main_bp
    from routes.professor import professor_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(professor_bp)

    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
