# backend/coworkpos/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Signs the Flask session cookie that carries the login token
    SECRET_KEY = os.environ.get("SESSION_SECRET", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///coworkpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Flat fees in dirhams, applied when a sale omits its amount
    ENTRY_FEE = _env_int("ENTRY_FEE", 25)
    SUBSCRIPTION_FEE = _env_int("SUBSCRIPTION_FEE", 300)

    # "flag": the sale commits and is marked for reconciliation when stock
    # deduction fails. "fail": the sale is rejected.
    STOCK_DEDUCTION_POLICY = os.environ.get("STOCK_DEDUCTION_POLICY", "flag")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    DEFAULT_SUPERADMIN_PASSWORD = os.environ.get("DEFAULT_SUPERADMIN_PASSWORD", "superadmin")

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)
