import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text

from .config import settings
from .database import SessionLocal, engine
from .models import Base
from .redis_client import redis_client
from .routers import managers, slots, templates
from .services.horizon_extender import horizon_extender_loop
from .services.slots.errors import ReceptionError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    task = None
    if settings.horizon_refresh_interval_seconds > 0:
        task = asyncio.create_task(
            horizon_extender_loop(settings.horizon_refresh_interval_seconds)
        )

    yield

    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


app = FastAPI(title="Reception Booking API", lifespan=lifespan)


@app.exception_handler(ReceptionError)
async def reception_error_handler(request: Request, exc: ReceptionError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
    )


app.include_router(managers.router)
app.include_router(slots.router)
app.include_router(templates.router)


@app.get("/health")
def health():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    finally:
        db.close()

    redis_ok = None
    if redis_client is not None:
        try:
            redis_ok = redis_client.ping()
        except RedisError:
            logger.exception("Redis health check failed")
            redis_ok = False

    return {"database": True, "redis": redis_ok}
