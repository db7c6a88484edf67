# backend/poscore/config.py
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

    # SQLite DB stored in backend/instance/poscore.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///poscore.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar-day boundaries for summaries, closures and reports
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "UTC")

    # When enabled, sale lines must use the product's current sale price
    ENFORCE_CATALOG_PRICE = _env_flag("ENFORCE_CATALOG_PRICE", False)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
