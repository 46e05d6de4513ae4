# webhook_trigger/worker/transitions.py

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

from webhook_trigger.schemas.schedules import DispatchOutcome, Schedule
from webhook_trigger.worker.recurrence import next_after


@dataclass(frozen=True)
class Completed:
    status = "completed"

    def fields(self, now: datetime) -> Dict[str, Any]:
        return {"status": self.status, "last_triggered": now}


@dataclass(frozen=True)
class Rescheduled:
    next_trigger_time: datetime
    status = "pending"

    def fields(self, now: datetime) -> Dict[str, Any]:
        # recurring schedules go back to pending so the next pass picks them up
        return {"status": self.status, "last_triggered": now, "next_trigger_time": self.next_trigger_time}


@dataclass(frozen=True)
class Failed:
    reason: str
    status = "failed"

    def fields(self, now: datetime) -> Dict[str, Any]:
        return {"status": self.status, "last_triggered": now}


Transition = Union[Completed, Rescheduled, Failed]


def decide(schedule: Schedule, outcome: DispatchOutcome, now: datetime) -> Transition:
    """
    pending --ok, no valid recurrence--> completed
    pending --ok, recurring--> pending (next_trigger_time advances)
    pending --rejected / errored--> failed
    """
    if not outcome.ok:
        return Failed(reason=outcome.error or "Webhook call failed")

    next_time: Optional[datetime] = None
    if schedule.is_recurring and schedule.recurring_pattern:
        next_time = next_after(
            schedule.schedule_time,
            schedule.recurring_pattern,
            schedule.next_trigger_time,
            schedule.timezone,
        )

    if next_time is not None:
        return Rescheduled(next_trigger_time=next_time)
    return Completed()
