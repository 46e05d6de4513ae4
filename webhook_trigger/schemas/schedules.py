from datetime import datetime, timezone
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

ScheduleStatus = Literal["pending", "completed", "failed"]
ResultStatus = Literal["success", "failed", "error", "skipped"]

ScheduleId = Union[int, str]


class Schedule(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: ScheduleId
    user_email: Optional[str] = None
    agent_type: Optional[str] = None
    schedule_time: datetime
    timezone: Optional[str] = None
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None   # free text; unknown patterns mean "no recurrence"
    webhook_url: str
    status: ScheduleStatus = "pending"
    next_trigger_time: Optional[datetime] = None
    last_triggered: Optional[datetime] = None

    # timestamps without offset are read as UTC
    @field_validator("schedule_time", "next_trigger_time", "last_triggered")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class DispatchOutcome(BaseModel):
    ok: bool
    http_status: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def delivered(cls, http_status: int) -> "DispatchOutcome":
        return cls(ok=True, http_status=http_status)

    @classmethod
    def rejected(cls, http_status: int) -> "DispatchOutcome":
        return cls(ok=False, http_status=http_status, error="Webhook call failed")

    @classmethod
    def errored(cls, message: str) -> "DispatchOutcome":
        return cls(ok=False, error=message)

    @property
    def report_status(self) -> ResultStatus:
        if self.ok:
            return "success"
        # got an answer from the target -> "failed"; never reached it -> "error"
        return "failed" if self.http_status is not None else "error"


class ScheduleResult(BaseModel):
    schedule_id: Optional[ScheduleId] = None
    status: ResultStatus
    webhook_status: Optional[int] = None
    next_trigger_time: Optional[datetime] = None
    error: Optional[str] = None
    persist_error: Optional[str] = None


class TriggerReport(BaseModel):
    triggered_at: datetime
    processed_count: int
    results: List[ScheduleResult] = []

    def to_response(self) -> dict:
        if self.processed_count == 0:
            return {"message": "No schedules to trigger"}
        return {
            "message": f"Processed {self.processed_count} schedules",
            "results": [r.model_dump(mode="json", exclude_none=True) for r in self.results],
        }
