import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# job-images bucket limits
MAX_JOB_IMAGES = 5
JOB_IMAGE_MAX_BYTES = 50 * 1024 * 1024


def _database_url():
    url = os.environ.get("DATABASE_URL")

    # Local fallback
    if not url:
        url = "sqlite:///campus_jobs.db"

    # Fix postgres:// issue
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    PREFERRED_URL_SCHEME = "https"

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.environ.get("RENDER") == "true"

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Backend auth sessions
    SESSION_LIFETIME_SECONDS = int(os.environ.get("SESSION_LIFETIME_SECONDS", 3600))
    SESSION_REFRESH_WINDOW_SECONDS = int(os.environ.get("SESSION_REFRESH_WINDOW_SECONDS", 300))

    # job-images bucket
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(BASE_DIR, "upload", "job-images"))
    JOB_IMAGE_MAX_BYTES = JOB_IMAGE_MAX_BYTES
    # Whole request: every image at its limit plus the form fields
    MAX_CONTENT_LENGTH = MAX_JOB_IMAGES * JOB_IMAGE_MAX_BYTES + 1024 * 1024

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = "sqlite://"
