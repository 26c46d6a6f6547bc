# backend/posledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/posledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///posledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

    # Returns normally only match untouched (Completed) lines. Turning this on
    # lets a second return run against a Partially Returned line.
    RETURN_ALLOW_PARTIALLY_RETURNED_LINES = _env_flag("RETURN_ALLOW_PARTIALLY_RETURNED_LINES")

    # Default: an order is "Returned" once every line is Returned or
    # Partially Returned. When on, every line must be fully Returned.
    ORDER_RETURN_REQUIRES_FULL_LINES = _env_flag("ORDER_RETURN_REQUIRES_FULL_LINES")
