import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .database import init_db
from .redis_client import redis_client
from .routers import appointments, availability

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(
        f"Slot engine started (locks: {'redis' if redis_client is not None else 'local'})"
    )
    yield


app = FastAPI(title="Slot Booking Engine", lifespan=lifespan)

app.include_router(availability.router)
app.include_router(appointments.router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "redis": redis_client.ping() if redis_client is not None else None,
    }
