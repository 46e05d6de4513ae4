# webhook_trigger/worker/dispatcher.py

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from webhook_trigger.schemas.schedules import DispatchOutcome, Schedule

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def build_payload(schedule: Schedule, now: datetime) -> Dict[str, Any]:
    return {
        "schedule_id": schedule.id,
        "user_email": schedule.user_email,
        "agent_type": schedule.agent_type,
        "triggered_at": now.isoformat(),
        "timezone": schedule.timezone,
    }


def _post(client: httpx.Client, url: str, payload: Dict[str, Any], timeout: float) -> httpx.Response:
    return client.post(url, json=payload, headers={"Content-Type": "application/json"}, timeout=timeout)


def dispatch(
    schedule: Schedule,
    now: datetime,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> DispatchOutcome:
    """
    Un solo POST al webhook del schedule, sin reintentos.
    2xx -> ok; cualquier otro status -> rejected; errores de red, DNS,
    timeouts o URLs inválidas -> errored (nunca se propagan).
    """
    payload = build_payload(schedule, now)
    try:
        if client is None:
            with httpx.Client(timeout=timeout) as c:
                r = _post(c, schedule.webhook_url, payload, timeout)
        else:
            r = _post(client, schedule.webhook_url, payload, timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        message = str(e) or e.__class__.__name__
        logger.warning("Webhook for schedule %s errored: %s", schedule.id, message)
        return DispatchOutcome.errored(message)

    if r.is_success:
        return DispatchOutcome.delivered(r.status_code)

    logger.warning("Webhook for schedule %s answered %s", schedule.id, r.status_code)
    return DispatchOutcome.rejected(r.status_code)
