from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cashbook.api.v1 import alerts, conflicts, integration, ledger, records, rollups
from cashbook.common.error_handlers import register_error_handlers
from cashbook.core.config import settings
from cashbook.core.database import SessionLocal, init_db
from cashbook.core.scheduler import ThreadingScheduler
from cashbook.logger_config import logger
from cashbook.services.integration import build_integration_service


def run_scheduled_passes():
    """One integration pass per configured tenant, each on its own session."""
    for tenant_id in settings.SCHEDULED_TENANTS:
        db = SessionLocal()
        try:
            build_integration_service(db, tenant_id).run_integration_pass()
        finally:
            db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    scheduler = None
    if settings.SCHEDULER_ENABLED and settings.SCHEDULED_TENANTS:
        scheduler = ThreadingScheduler()
        scheduler.schedule(settings.INTEGRATION_INTERVAL_SECONDS, run_scheduled_passes)
        logger.info(
            f"Integration scheduler started for {len(settings.SCHEDULED_TENANTS)} tenant(s) "
            f"every {settings.INTEGRATION_INTERVAL_SECONDS}s"
        )
    yield
    if scheduler is not None:
        scheduler.shutdown()


app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)

origins = [
    "http://localhost:5173",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Register API routers
app.include_router(records.router, prefix="/api/v1/records", tags=["records"])
app.include_router(ledger.router, prefix="/api/v1/ledger", tags=["ledger"])
app.include_router(
    conflicts.router, prefix="/api/v1/conflicts", tags=["conflicts"])
app.include_router(
    integration.router, prefix="/api/v1/integration", tags=["integration"])
app.include_router(alerts.router, prefix="/api/v1/alerts", tags=["alerts"])
app.include_router(rollups.router, prefix="/api/v1/rollups", tags=["rollups"])


@app.get("/")
def read_root():
    return {"message": f"Welcome to the {settings.APP_NAME} APIs!"}


@app.get("/health")
def health():
    return {"status": "ok", "environment": settings.APP_ENV}
