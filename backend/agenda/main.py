# backend/agenda/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .core.errors import SchedulingError, scheduling_error_handler
from .database import Base, engine
from .models import availability, block, booking  # noqa: F401  registra le tabelle
from .routers import agenda as agenda_router
from .routers import booking as booking_router
from .routers import calendar as calendar_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Agenda avviata (%s, fuso %s)", settings.APP_ENV, settings.TIMEZONE)
    yield


app = FastAPI(title="Clinic Agenda", lifespan=lifespan)

# --- Errori di dominio -> risposte HTTP ---
app.add_exception_handler(SchedulingError, scheduling_error_handler)

# --- API Routers ---
app.include_router(booking_router.router)
app.include_router(agenda_router.router)
app.include_router(calendar_router.router)


@app.get("/ping")
def ping():
    return {"ok": True}
