# backend/chargeslot/routers/stations.py
# DELETE = soft-delete (status = 'deleted'), gated by active bookings

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..errors import StationUnavailableError
from ..models import Users
from ..schemas.slots import SlotGenerationResponse, StationDaySlotsResponse
from ..schemas.stations import StationCreate, StationRead, StationStats, StationUpdate
from ..services.slots import SlotGenerator
from ..services.stations import StationLifecycleManager

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get("/", response_model=list[StationRead])
def list_stations(db: Session = Depends(get_db)):
    return StationLifecycleManager(db).list()


@router.get("/all", response_model=list[StationRead])
def list_all_stations(
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    return StationLifecycleManager(db).list(include_inactive=True)


@router.get("/{id}", response_model=StationRead)
def get_station(id: int, db: Session = Depends(get_db)):
    return StationLifecycleManager(db).get(id)


@router.post("/", response_model=StationRead, status_code=status.HTTP_201_CREATED)
def create_station(
    data: StationCreate,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    return StationLifecycleManager(db).create_station(data.model_dump())


@router.put("/{id}", response_model=StationRead)
def update_station(
    id: int,
    data: StationUpdate,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    manager = StationLifecycleManager(db)
    station = manager.get(id)
    return manager.update_station(station, data.model_dump(exclude_unset=True))


@router.get("/{id}/stats", response_model=StationStats)
def get_station_stats(
    id: int,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    return StationLifecycleManager(db).stats(id)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_station(
    id: int,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    manager = StationLifecycleManager(db)
    manager.delete_station(manager.get(id))


@router.get("/{id}/time-slots", response_model=StationDaySlotsResponse)
def get_time_slots(
    id: int,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    """Slots of a station for one date; generated on first request."""
    station = StationLifecycleManager(db).get(id)
    if station.status != "active":
        raise StationUnavailableError(f"Station is not active (status: {station.status})")

    slots = SlotGenerator(db).ensure_day(station, target_date)
    db.commit()

    return StationDaySlotsResponse(
        station_id=station.id,
        station_name=station.name,
        date=target_date,
        slots=slots,
    )


@router.post("/{id}/time-slots/extend", response_model=SlotGenerationResponse)
def extend_time_slots(
    id: int,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    """Generate slots for horizon dates that have none yet (admin)."""
    station = StationLifecycleManager(db).get(id)
    generator = SlotGenerator(db)
    start = date.today()

    generated = generator.fill_missing(station, start_date=start)
    db.commit()

    return SlotGenerationResponse(
        station_id=station.id,
        generated_dates=generated,
        start_date=start,
        horizon_days=generator.config.horizon_days,
    )
