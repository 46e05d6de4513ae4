# main.py

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webhook_trigger.core.config import get_settings
from webhook_trigger.core.logging_config import setup_logging
from webhook_trigger.api.routers import trigger


# -------------------------------------------------------------------
# Variables de entorno: sin SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY
# la app no arranca
# -------------------------------------------------------------------
load_dotenv()
settings = get_settings()
setup_logging(settings.log_level)

app = FastAPI(
    title="Schedule Webhook Trigger",
    description="""
Periodic trigger for deferred and recurring agent schedules stored in Supabase.

**What it does**
- **Trigger pass:** `/schedule-webhook-trigger` finds every `pending` schedule whose `next_trigger_time` has passed and POSTs `{schedule_id, user_email, agent_type, triggered_at, timezone}` to its `webhook_url`.
- **State:** non-recurring schedules end `completed` (2xx) or `failed`; recurring ones (daily/weekly/monthly) go back to `pending` with the next occurrence.
- **Isolation:** one unreachable webhook never stops the rest of the batch.
- **Health:** `/health/trigger` reports counts per status.

**Notes**
- Call the trigger from a cron/scheduler, or run `python -m webhook_trigger.worker.trigger_loop`.
""",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(trigger.router)


@app.get("/")
def read_root():
    return {"message": "Welcome to Schedule Webhook Trigger"}
