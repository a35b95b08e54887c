# backend/weblarek/config.py
from __future__ import annotations
import os

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/weblarek.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///weblarek.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Access token: short-lived, returned in the response body
    ACCESS_TOKEN_SECRET = os.environ.get("AUTH_ACCESS_TOKEN_SECRET", "dev-access-secret-change-me")
    ACCESS_TOKEN_EXPIRY = os.environ.get("AUTH_ACCESS_TOKEN_EXPIRY", "1d")

    # Refresh token: long-lived, delivered as an HTTP-only cookie
    REFRESH_TOKEN_SECRET = os.environ.get("AUTH_REFRESH_TOKEN_SECRET", "dev-refresh-secret-change-me")
    REFRESH_TOKEN_EXPIRY = os.environ.get("AUTH_REFRESH_TOKEN_EXPIRY", "7d")
    REFRESH_COOKIE_NAME = "refreshToken"
    REFRESH_COOKIE_SECURE = _env_flag("AUTH_REFRESH_COOKIE_SECURE")
    REFRESH_COOKIE_SAMESITE = "Lax"

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "10"))

    # Image storage: uploads land in PUBLIC_DIR/UPLOAD_PATH_TEMP and are moved
    # to PUBLIC_DIR/UPLOAD_PATH once a product references them
    PUBLIC_DIR = os.environ.get("PUBLIC_DIR", os.path.join(BACKEND_DIR, "public"))
    UPLOAD_PATH = os.environ.get("UPLOAD_PATH", "images")
    UPLOAD_PATH_TEMP = os.environ.get("UPLOAD_PATH_TEMP", "temp")

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get("ORIGIN_ALLOW", "http://localhost:5173").split(",")
        if origin.strip()
    }
