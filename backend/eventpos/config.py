# backend/eventpos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/eventpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///eventpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Ledger transaction coordinator: bounded optimistic retries
    LEDGER_MAX_ATTEMPTS = int(os.environ.get("LEDGER_MAX_ATTEMPTS", "10"))
    LEDGER_RETRY_BACKOFF = float(os.environ.get("LEDGER_RETRY_BACKOFF", "0.02"))

    # Statuses from which a cashier may confirm payment
    PAYMENT_SOURCE_STATUSES = _env_list("PAYMENT_SOURCE_STATUSES", "pending,pre-sale-confirmed")
    CASHBOX_REQUIRED_FOR_PAYMENT = _env_bool("CASHBOX_REQUIRED_FOR_PAYMENT", True)

    # Outbound purchase notifications (disabled when no URL is set)
    NOTIFY_WEBHOOK_URL = os.environ.get("NOTIFY_WEBHOOK_URL")
    NOTIFY_WEBHOOK_TOKEN = os.environ.get("NOTIFY_WEBHOOK_TOKEN")
    NOTIFY_TIMEOUT = float(os.environ.get("NOTIFY_TIMEOUT", "10"))
    EVENT_NAME = os.environ.get("EVENT_NAME", "School Event")
