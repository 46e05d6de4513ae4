# webhook_trigger/worker/trigger_loop.py
#
#   python -m webhook_trigger.worker.trigger_loop
#
# Alternativa local al cron que llama POST /schedule-webhook-trigger.

import logging
import time
from typing import Callable, Optional

import httpx
from dotenv import load_dotenv

from webhook_trigger.core.config import Settings, load_settings
from webhook_trigger.core.logging_config import setup_logging
from webhook_trigger.core.schedule_store import ScheduleStore, SupabaseScheduleStore
from webhook_trigger.core.supabase_client import get_service_supabase
from webhook_trigger.worker.processor import FetchSchedulesError, run_once

logger = logging.getLogger(__name__)


def run_loop(
    store: ScheduleStore,
    settings: Settings,
    *,
    client: Optional[httpx.Client] = None,
    max_passes: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Ejecuta una pasada cada settings.poll_seconds; devuelve cuántas pasadas corrió."""
    logger.info(
        "trigger loop running; poll=%ss timeout=%ss claim=%s",
        settings.poll_seconds, settings.webhook_timeout_seconds, settings.claim_schedules,
    )
    passes = 0
    while max_passes is None or passes < max_passes:
        try:
            report = run_once(
                store,
                client=client,
                timeout=settings.webhook_timeout_seconds,
                claim=settings.claim_schedules,
            )
            if report.processed_count:
                logger.info("Processed %d schedules", report.processed_count)
        except FetchSchedulesError as e:
            logger.error("pass skipped: %s", e)
        except Exception:
            logger.exception("loop error")
        passes += 1

        if max_passes is None or passes < max_passes:
            sleep(settings.poll_seconds)
    return passes


def main() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)
    store = SupabaseScheduleStore(get_service_supabase(), settings.schedules_table)
    with httpx.Client(timeout=settings.webhook_timeout_seconds) as client:
        run_loop(store, settings, client=client)


if __name__ == "__main__":
    main()
