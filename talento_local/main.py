import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from talento_local.settings import Settings, settings as default_settings
from talento_local.db.session import build_engine, build_sessionmaker
from talento_local.api.errors import register_exception_handlers
from talento_local.api.v1.jobs import router as jobs_router
from talento_local.api.v1.applications import router as applications_router
from talento_local.api.v1.metrics import router as metrics_router
from talento_local.services.notifications import NotificationService
from talento_local.services.outbox import OutboxProcessor

logger = logging.getLogger(__name__)

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings: Settings = app.state.settings
    outbox = None
    if settings.OUTBOX_ENABLED:
        outbox = OutboxProcessor(
            app.state.sessionmaker,
            NotificationService(webhook_url=settings.NOTIFICATION_WEBHOOK_URL),
            interval=settings.OUTBOX_INTERVAL_SECONDS,
            batch_size=settings.OUTBOX_BATCH_SIZE,
            max_attempts=settings.OUTBOX_MAX_ATTEMPTS,
            retry_base_seconds=settings.OUTBOX_RETRY_BASE_SECONDS,
            retry_max_seconds=settings.OUTBOX_RETRY_MAX_SECONDS,
        )
        await outbox.start()

    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")

    yield

    # Shutdown
    if outbox:
        await outbox.stop()
    await app.state.engine.dispose()

def create_app(settings: Optional[Settings] = None, engine: Optional[AsyncEngine] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    # Handed to requests through app.state; nothing below reaches for a global engine
    app.state.settings = settings
    app.state.engine = engine or build_engine(settings)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)

    register_exception_handlers(app)

    app.include_router(jobs_router, prefix="/api/v1/jobs", tags=["jobs"])
    app.include_router(applications_router, prefix="/api/v1/applications", tags=["applications"])
    app.include_router(metrics_router, tags=["metrics"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app

app = create_app()
