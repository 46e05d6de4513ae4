import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx
import pytest

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")

from webhook_trigger.core.schedule_store import ScheduleStoreError  # noqa: E402

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _ts(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class FakeScheduleStore:
    """In-memory store with the same contract as SupabaseScheduleStore."""

    def __init__(self, rows=None):
        self.rows: Dict[Any, Dict[str, Any]] = {r["id"]: dict(r) for r in rows or []}
        self.updates: List[tuple] = []
        self.find_calls = 0
        self.fail_find = False
        self.fail_update_ids = set()
        self.failing_updates: Dict[Any, int] = {}   # id -> how many upcoming updates fail

    def find(self, status, due_before):
        self.find_calls += 1
        if self.fail_find:
            raise ScheduleStoreError("find failed: connection refused")
        due = [
            dict(r) for r in self.rows.values()
            if r.get("status") == status
            and r.get("next_trigger_time") is not None
            and _ts(r["next_trigger_time"]) <= due_before
        ]
        return sorted(due, key=lambda r: _ts(r["next_trigger_time"]))

    def update(self, schedule_id, fields):
        if schedule_id in self.fail_update_ids:
            raise ScheduleStoreError(f"update of {schedule_id} failed: timeout")
        if self.failing_updates.get(schedule_id):
            self.failing_updates[schedule_id] -= 1
            raise ScheduleStoreError(f"update of {schedule_id} failed: 503")
        self.updates.append((schedule_id, dict(fields)))
        self.rows.setdefault(schedule_id, {"id": schedule_id}).update(fields)

    def claim(self, schedule_id):
        row = self.rows[schedule_id]
        if row.get("status") != "pending" or row.get("processing"):
            return False
        row["processing"] = True
        return True

    def count(self, status):
        return sum(1 for r in self.rows.values() if r.get("status") == status)


class WebhookTargets:
    """httpx.MockTransport answering per URL with a status code or raising an exception."""

    def __init__(self):
        self.routes: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []
        self.client = httpx.Client(transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        action = self.routes.get(str(request.url), 200)
        if isinstance(action, Exception):
            raise action
        return httpx.Response(action, json={"received": True})

    def urls_called(self):
        return [str(r.url) for r in self.requests]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_row():
    def _make(schedule_id, **overrides):
        row = {
            "id": schedule_id,
            "user_email": f"{schedule_id}@example.com",
            "agent_type": "daily_briefing",
            "schedule_time": (NOW - timedelta(days=1)).isoformat(),
            "timezone": "America/Tijuana",
            "is_recurring": False,
            "recurring_pattern": None,
            "webhook_url": f"https://hooks.example.com/{schedule_id}",
            "status": "pending",
            "next_trigger_time": (NOW - timedelta(days=1)).isoformat(),
            "last_triggered": None,
        }
        row.update(overrides)
        return row

    return _make


@pytest.fixture
def store():
    return FakeScheduleStore()


@pytest.fixture
def webhooks():
    targets = WebhookTargets()
    yield targets
    targets.client.close()
