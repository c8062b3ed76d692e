import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import settings
from .database import SessionLocal, engine, get_db
from .errors import register_error_handlers
from .models import Base
from .routers import bookings, stations, users
from .services.no_show_checker import no_show_checker_loop
from .services.slots import SlotGenerator

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create tables and top up the slot horizon of active stations."""
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        generated = SlotGenerator(db).extend_horizon()
        db.commit()
        logger.info(f"Slot horizon extended: {generated} station-date(s) generated")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(init_db)

    task = None
    if settings.no_show_checker_enabled:
        task = asyncio.create_task(no_show_checker_loop())

    yield

    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="EV Charging Slot Booking API", lifespan=lifespan)
register_error_handlers(app)

app.include_router(stations.router)
app.include_router(bookings.router)
app.include_router(users.router)


@app.get("/health")
def health(db: Session = Depends(get_db)):
    return {"database": db.execute(text("SELECT 1")).scalar() == 1}
