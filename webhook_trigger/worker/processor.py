# webhook_trigger/worker/processor.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from webhook_trigger.core.schedule_store import ScheduleStore, ScheduleStoreError
from webhook_trigger.schemas.schedules import DispatchOutcome, Schedule, ScheduleResult, TriggerReport
from webhook_trigger.worker.dispatcher import DEFAULT_TIMEOUT_SECONDS, dispatch
from webhook_trigger.worker.transitions import Failed, Rescheduled, Transition, decide

logger = logging.getLogger(__name__)


class FetchSchedulesError(Exception):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _persist(store: ScheduleStore, schedule_id: Any, transition: Transition, now: datetime, release_claim: bool) -> Optional[str]:
    """Writes the transition; a failure is returned, never raised.

    A claimed row always has its claim released, also when the
    transition write fails.
    """
    if schedule_id is None:
        return "Row has no id; nothing to update"
    fields = transition.fields(now)
    if release_claim:
        fields["processing"] = False
    try:
        store.update(schedule_id, fields)
    except ScheduleStoreError as e:
        logger.error("Error updating schedule %s: %s", schedule_id, e)
        if release_claim:
            _release_claim(store, schedule_id)
        return str(e)
    return None


def _release_claim(store: ScheduleStore, schedule_id: Any) -> None:
    try:
        store.update(schedule_id, {"processing": False})
    except ScheduleStoreError as e:
        logger.error("Could not release claim on schedule %s: %s", schedule_id, e)


def _result(schedule_id: Any, outcome: DispatchOutcome, transition: Transition) -> ScheduleResult:
    return ScheduleResult(
        schedule_id=schedule_id,
        status=outcome.report_status,
        webhook_status=outcome.http_status,
        next_trigger_time=transition.next_trigger_time if isinstance(transition, Rescheduled) else None,
        error=outcome.error,
    )


def process_schedule(
    store: ScheduleStore,
    row: Dict[str, Any],
    now: datetime,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    claim: bool = False,
) -> ScheduleResult:
    """
    One schedule: optional claim -> dispatch -> decide -> update.
    Nothing raised in here leaves this function.
    """
    schedule_id = row.get("id")
    claimed = False
    try:
        schedule = Schedule.model_validate(row)
        if claim:
            try:
                claimed = store.claim(schedule.id)
            except ScheduleStoreError as e:
                # not dispatched: the row stays pending for the next pass
                logger.error("Could not claim schedule %s: %s", schedule.id, e)
                return ScheduleResult(schedule_id=schedule.id, status="skipped", error=str(e))
            if not claimed:
                logger.info("Schedule %s already claimed by another pass; skipping", schedule.id)
                return ScheduleResult(schedule_id=schedule.id, status="skipped", error="Claimed by another pass")

        logger.info("Triggering webhook for schedule %s", schedule.id)
        outcome = dispatch(schedule, now, client=client, timeout=timeout)
        transition = decide(schedule, outcome, now)
    except (ValidationError, ScheduleStoreError) as e:
        logger.error("Error processing schedule %s: %s", schedule_id, e)
        outcome = DispatchOutcome.errored(str(e))
        transition = Failed(reason=str(e))
    except Exception as e:  # noqa: BLE001
        logger.exception("Unexpected error processing schedule %s", schedule_id)
        outcome = DispatchOutcome.errored(str(e) or e.__class__.__name__)
        transition = Failed(reason=outcome.error)

    result = _result(schedule_id, outcome, transition)
    result.persist_error = _persist(store, schedule_id, transition, now, release_claim=claimed)
    return result


def run_once(
    store: ScheduleStore,
    now: Optional[datetime] = None,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    claim: bool = False,
) -> TriggerReport:
    """
    One pass: every pending schedule with next_trigger_time <= now gets
    exactly one dispatch attempt and one state update, in order.

    Raises FetchSchedulesError when the due query itself fails; in that
    case no schedule has been touched.
    """
    now = now or _utcnow()

    try:
        rows = store.find("pending", now)
    except ScheduleStoreError as e:
        logger.error("Error fetching schedules: %s", e, exc_info=True)
        raise FetchSchedulesError("Failed to fetch schedules") from e

    if not rows:
        logger.debug("No schedules due at %s", now.isoformat())
        return TriggerReport(triggered_at=now, processed_count=0, results=[])

    logger.info("Processing %d due schedules at %s", len(rows), now.isoformat())
    results = [
        process_schedule(store, row, now, client=client, timeout=timeout, claim=claim)
        for row in rows
    ]

    counts: Dict[str, int] = {}
    for r in results:
        counts[r.status] = counts.get(r.status, 0) + 1
    logger.info("Pass finished: %s", counts)

    return TriggerReport(triggered_at=now, processed_count=len(rows), results=results)
