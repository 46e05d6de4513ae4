# webhook_trigger/core/config.py

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    supabase_url: str
    supabase_service_role_key: str
    schedules_table: str = "schedules"
    webhook_timeout_seconds: float = 30.0
    poll_seconds: int = 60
    claim_schedules: bool = False
    log_level: str = "INFO"


def _number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be numeric, got {raw!r}")


def load_settings() -> Settings:
    """
    Reads the environment every time it is called so values loaded by
    load_dotenv() after import are still picked up.
    """
    url = (os.getenv("SUPABASE_URL") or "").rstrip("/")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or ""

    if not url or not key:
        missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_SERVICE_ROLE_KEY", key)) if not value]
        raise RuntimeError(f"Missing {', '.join(missing)} in environment (.env)")

    return Settings(
        supabase_url=url,
        supabase_service_role_key=key,
        schedules_table=os.getenv("SCHEDULES_TABLE") or "schedules",
        webhook_timeout_seconds=_number("WEBHOOK_TIMEOUT_SECONDS", "30", float),
        poll_seconds=_number("TRIGGER_POLL_SECONDS", "60", int),
        claim_schedules=os.getenv("TRIGGER_CLAIM_SCHEDULES", "0") == "1",
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
