# backend/app/config.py
from __future__ import annotations
import os


def _optional_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/marketplace.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///marketplace.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # The operator's own SHOP-class vendor that fulfils every regular order.
    # When unset, routing falls back to the single approved SHOP vendor.
    FULFILLER_VENDOR_ID = _optional_int("FULFILLER_VENDOR_ID")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
