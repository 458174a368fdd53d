import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from config import settings
from api.v1.router import api_router
from core.delivery import NotificationWorker
from core.meal_plans import MealPlanService
from core.reminder_store import ReminderStore
from core.scheduler import ReminderScheduler
from services import db
from services.notifications import PushNotifier
from services.spoonacular import SpoonacularClient

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)
_LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.init_models()
    sessions = await db.sessionmaker()

    notifier = PushNotifier(
        sessions,
        settings.push_gateway_url,
        settings.push_gateway_key,
        timeout=settings.http_timeout_seconds,
    )
    worker = NotificationWorker(
        notifier,
        max_attempts=settings.delivery_max_attempts,
        backoff_seconds=settings.delivery_backoff_seconds,
        dead_letter_limit=settings.delivery_dead_letter_limit,
    )
    store = ReminderStore(sessions)
    scheduler = ReminderScheduler(store, worker, grace_seconds=settings.reminder_grace_seconds)
    store.scheduler = scheduler

    client = SpoonacularClient(
        settings.spoonacular_api_key,
        settings.spoonacular_base_url,
        timeout=settings.http_timeout_seconds,
        max_retries=settings.http_max_retries,
        backoff_seconds=settings.http_backoff_seconds,
    )

    app.state.notifier = notifier
    app.state.reminders = store
    app.state.scheduler = scheduler
    app.state.meal_plans = MealPlanService(
        sessions,
        client,
        user_email=settings.user_email,
        history_limit=settings.mealplan_history_limit,
    )

    await worker.start()
    await scheduler.rehydrate()
    _LOG.info("service started (env=%s)", settings.env_name)
    try:
        yield
    finally:
        await scheduler.shutdown()
        await worker.stop()
        await db.dispose_engine()


app = FastAPI(title="Wellness Reminders API", version="1.0.0", lifespan=lifespan)

# CORS (public demo only – lock down in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")

@app.get("/health", tags=["meta"])
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.env_name}
