from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _split_list(raw: str | None) -> Tuple[str, ...]:
    # Comma-separated lists; blanks are ignored so "a,,b," works.
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    webhook_secret: str

    redis_url: str
    history_key: str
    history_capacity: int

    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_starttls: bool
    mail_from: str
    mail_to: Tuple[str, ...] = field(default_factory=tuple)

    sms_to: Tuple[str, ...] = field(default_factory=tuple)
    sms_max_chars: int = 160

    chat_webhook_urls: Tuple[str, ...] = field(default_factory=tuple)
    relay_webhook_urls: Tuple[str, ...] = field(default_factory=tuple)

    channel_timeout_seconds: float = 10.0
    dispatch_timeout_seconds: float = 15.0
    dispatch_max_workers: int = 8

    log_level: str = "INFO"


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("ALERT_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    smtp_user = os.getenv("SMTP_USER", "")

    # KV_URL is what hosted Redis add-ons usually export.
    redis_url = os.getenv("REDIS_URL") or os.getenv("KV_URL") or "redis://localhost:6379/0"

    return Settings(
        webhook_secret=os.getenv("WEBHOOK_SECRET", ""),
        redis_url=redis_url,
        history_key=os.getenv("HISTORY_KEY", "events"),
        history_capacity=int(os.getenv("HISTORY_CAPACITY", "50")),
        smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_user=smtp_user,
        smtp_password=os.getenv("SMTP_PASS", ""),
        smtp_starttls=_env_flag("SMTP_STARTTLS", "1"),
        mail_from=os.getenv("MAIL_FROM") or smtp_user,
        mail_to=_split_list(os.getenv("MAIL_TO")),
        sms_to=_split_list(os.getenv("SMS_TO")),
        sms_max_chars=int(os.getenv("SMS_MAX_CHARS", "160")),
        chat_webhook_urls=_split_list(os.getenv("CHAT_WEBHOOK_URLS")),
        relay_webhook_urls=_split_list(os.getenv("RELAY_WEBHOOK_URLS")),
        channel_timeout_seconds=float(os.getenv("CHANNEL_TIMEOUT_SECONDS", "10")),
        dispatch_timeout_seconds=float(os.getenv("DISPATCH_TIMEOUT_SECONDS", "15")),
        dispatch_max_workers=max(1, int(os.getenv("DISPATCH_MAX_WORKERS", "8"))),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
