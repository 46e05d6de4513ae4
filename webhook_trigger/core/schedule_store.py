# webhook_trigger/core/schedule_store.py

import logging
from datetime import datetime
from typing import Any, Dict, List, Protocol

from supabase import Client

logger = logging.getLogger(__name__)


class ScheduleStoreError(Exception):
    pass


class ScheduleStore(Protocol):
    def find(self, status: str, due_before: datetime) -> List[Dict[str, Any]]: ...

    def update(self, schedule_id: Any, fields: Dict[str, Any]) -> None: ...

    def claim(self, schedule_id: Any) -> bool: ...

    def count(self, status: str) -> int: ...


def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in fields.items()}


class SupabaseScheduleStore:
    """
    Schedule Store over the Supabase PostgREST builder.
    Every backend failure surfaces as ScheduleStoreError.
    """

    def __init__(self, sb: Client, table: str = "schedules"):
        self._sb = sb
        self._table = table

    def find(self, status: str, due_before: datetime) -> List[Dict[str, Any]]:
        try:
            res = (
                self._sb.table(self._table)
                .select("*")
                .eq("status", status)
                .lte("next_trigger_time", due_before.isoformat())
                .order("next_trigger_time", desc=False)
                .execute()
            )
        except Exception as e:
            raise ScheduleStoreError(f"find failed: {e}") from e
        return res.data or []

    def update(self, schedule_id: Any, fields: Dict[str, Any]) -> None:
        try:
            self._sb.table(self._table).update(_serialize(fields)).eq("id", schedule_id).execute()
        except Exception as e:
            raise ScheduleStoreError(f"update of {schedule_id} failed: {e}") from e

    def claim(self, schedule_id: Any) -> bool:
        # only the pass that flips processing false -> true while pending wins
        try:
            res = (
                self._sb.table(self._table)
                .update({"processing": True})
                .eq("id", schedule_id)
                .eq("status", "pending")
                .eq("processing", False)
                .execute()
            )
        except Exception as e:
            raise ScheduleStoreError(f"claim of {schedule_id} failed: {e}") from e
        return bool(res.data)

    def count(self, status: str) -> int:
        try:
            res = self._sb.table(self._table).select("id", count="exact").eq("status", status).execute()
        except Exception as e:
            raise ScheduleStoreError(f"count failed: {e}") from e
        return res.count or 0
