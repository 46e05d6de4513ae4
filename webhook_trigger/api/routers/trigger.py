# webhook_trigger/api/routers/trigger.py

import logging
from datetime import datetime, timezone
from typing import Iterator

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from webhook_trigger.core.config import Settings, get_settings
from webhook_trigger.core.schedule_store import ScheduleStore, ScheduleStoreError, SupabaseScheduleStore
from webhook_trigger.core.supabase_client import get_service_supabase
from webhook_trigger.worker.processor import FetchSchedulesError, run_once

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Trigger"])


def get_schedule_store(settings: Settings = Depends(get_settings)) -> ScheduleStore:
    return SupabaseScheduleStore(get_service_supabase(), settings.schedules_table)


def get_webhook_client(settings: Settings = Depends(get_settings)) -> Iterator[httpx.Client]:
    with httpx.Client(timeout=settings.webhook_timeout_seconds) as client:
        yield client


@router.api_route("/schedule-webhook-trigger", methods=["GET", "POST"])
def trigger_due_schedules(
    store: ScheduleStore = Depends(get_schedule_store),
    client: httpx.Client = Depends(get_webhook_client),
    settings: Settings = Depends(get_settings),
):
    """
    Una pasada del trigger: dispara el webhook de cada schedule vencido y
    actualiza su estado. Pensado para llamarse desde un cron.
    """
    try:
        report = run_once(
            store,
            client=client,
            timeout=settings.webhook_timeout_seconds,
            claim=settings.claim_schedules,
        )
    except FetchSchedulesError:
        return JSONResponse(status_code=500, content={"error": "Failed to fetch schedules"})
    except Exception as e:
        logger.exception("Trigger pass error")
        return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(e)})

    return JSONResponse(status_code=200, content=report.to_response())


@router.get("/health/trigger", tags=["Health"])
def health_trigger(store: ScheduleStore = Depends(get_schedule_store)):
    now = datetime.now(timezone.utc).isoformat()
    try:
        stats = {s: store.count(s) for s in ("pending", "completed", "failed")}
    except ScheduleStoreError as e:
        return JSONResponse(status_code=503, content={"status": "degraded", "time": now, "error": str(e)})
    return {"status": "ok", "time": now, "stats": stats}
