import os


# Absolute path to project root
# (a stable anchor for all file paths)
basedir = os.path.abspath(os.path.dirname(__file__))

# Runtime only directory (local cache DB)
instance_dir = os.path.join(basedir, "instance")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "sqlite:///" + os.path.join(instance_dir, "app.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # REST backend origin. Every API call goes through services.api_client
    API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8080")
    API_TIMEOUT_SECONDS = float(os.environ.get("API_TIMEOUT_SECONDS", "10"))

    # Auth session (tokens live in the signed session cookie)
    SESSION_LIFETIME_DAYS = int(os.environ.get("SESSION_LIFETIME_DAYS", "7"))

    # UI timings
    MY_COURSES_CACHE_TTL_SECONDS = 30
    NOTIFICATION_POLL_SECONDS = 30
    SEARCH_DEBOUNCE_SECONDS = 0.5
    CATALOG_PAGE_SIZE = 10

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    API_BASE_URL = "http://backend.test"
    LOG_LEVEL = "DEBUG"
