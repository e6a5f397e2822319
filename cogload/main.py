import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from cogload.api.ai import router as ai_router
from cogload.config.settings import settings
from cogload.core.logger import setup_logger
from cogload.db.models import Base
from cogload.db.session import get_engine
from cogload.jobs.scheduler import create_scheduler

setup_logger(level=settings.log_level, log_file=settings.log_file)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Create tables and start the daily load scheduler."""
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = create_scheduler()
        scheduler.start()
        logger.info("[SCHEDULER] Started daily load scheduler")
    else:
        logger.info("[SCHEDULER] Scheduler disabled (SCHEDULER_ENABLED=false)")

    await asyncio.sleep(0)
    yield

    if scheduler is not None:
        scheduler.shutdown()
        logger.info("[SCHEDULER] Stopped daily load scheduler")


app = FastAPI(title="Cognitive Load API", lifespan=lifespan)
app.include_router(ai_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response
