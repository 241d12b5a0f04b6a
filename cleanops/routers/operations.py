from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cleanops.db import get_db
from cleanops.schemas import (
    CleaningRecordCreate,
    CleaningRecordRead,
    ObservationCreate,
    ObservationRead,
)
from cleanops.security import SessionContext, require_session
from cleanops.services.cleaning import (
    create_cleaning_record,
    create_observation,
    list_cleaning_records,
    list_observations,
)

router = APIRouter(tags=["operations"])


@router.post("/api/cleaning-records", response_model=CleaningRecordRead)
def post_cleaning_record(
    payload: CleaningRecordCreate,
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> CleaningRecordRead:
    return create_cleaning_record(db, payload, operator_id=context.user_id)


@router.get("/api/cleaning-records", response_model=list[CleaningRecordRead])
def get_cleaning_records(
    objective_id: int | None = Query(default=None, ge=1),
    sector_id: int | None = Query(default=None, ge=1),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[CleaningRecordRead]:
    return list_cleaning_records(
        db,
        objective_id=objective_id,
        sector_id=sector_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.post("/api/observations", response_model=ObservationRead)
def post_observation(
    payload: ObservationCreate,
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> ObservationRead:
    return create_observation(db, payload, operator_id=context.user_id)


@router.get("/api/observations", response_model=list[ObservationRead])
def get_observations(
    sector_id: int | None = Query(default=None, ge=1),
    objective_id: int | None = Query(default=None, ge=1),
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[ObservationRead]:
    return list_observations(db, sector_id=sector_id, objective_id=objective_id)
