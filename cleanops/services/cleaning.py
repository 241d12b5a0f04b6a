from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from cleanops.errors import InvalidRequestError, NotFoundError
from cleanops.models import (
    CLEANING_STATUS_COMPLETED,
    CleaningRecord,
    Objective,
    Observation,
    Sector,
    User,
)
from cleanops.schemas import (
    CleaningRecordCreate,
    CleaningRecordRead,
    ObservationCreate,
    ObservationRead,
)


def utc_day_bounds(start_date: date | None, end_date: date | None) -> tuple[datetime | None, datetime | None]:
    """Half-open UTC bounds covering whole days; end_date is inclusive."""
    if start_date is not None and end_date is not None and end_date < start_date:
        raise InvalidRequestError("end_date must be greater than or equal to start_date")

    lower = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    upper = (
        datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if end_date
        else None
    )
    return lower, upper


def _get_sector(db: Session, sector_id: int) -> Sector:
    sector = db.get(Sector, sector_id)
    if sector is None:
        raise NotFoundError("Sector not found")
    return sector


def to_cleaning_record_read(
    record: CleaningRecord,
    sector: Sector | None,
    objective: Objective | None,
    operator: User | None,
) -> CleaningRecordRead:
    return CleaningRecordRead(
        id=record.id,
        sector_id=record.sector_id,
        sector_name=sector.name if sector else None,
        objective_id=objective.id if objective else None,
        objective_name=objective.name if objective else None,
        operator_id=record.operator_id,
        operator_name=operator.name if operator else None,
        cleaned_at=record.cleaned_at,
        status=record.status,
    )


def _cleaning_record_query():
    return (
        select(CleaningRecord, Sector, Objective, User)
        .join(Sector, Sector.id == CleaningRecord.sector_id, isouter=True)
        .join(Objective, Objective.id == Sector.objective_id, isouter=True)
        .join(User, User.id == CleaningRecord.operator_id, isouter=True)
    )


def create_cleaning_record(db: Session, payload: CleaningRecordCreate, *, operator_id: int) -> CleaningRecordRead:
    sector = _get_sector(db, payload.sector_id)
    record = CleaningRecord(
        sector_id=sector.id,
        operator_id=operator_id,
        status=payload.status or CLEANING_STATUS_COMPLETED,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    row = db.execute(_cleaning_record_query().where(CleaningRecord.id == record.id)).one()
    return to_cleaning_record_read(*row)


def list_cleaning_records(
    db: Session,
    *,
    objective_id: int | None = None,
    sector_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[CleaningRecordRead]:
    stmt = _cleaning_record_query().order_by(CleaningRecord.cleaned_at.desc(), CleaningRecord.id.desc())
    if objective_id is not None:
        stmt = stmt.where(Sector.objective_id == objective_id)
    if sector_id is not None:
        stmt = stmt.where(CleaningRecord.sector_id == sector_id)

    lower, upper = utc_day_bounds(start_date, end_date)
    if lower is not None:
        stmt = stmt.where(CleaningRecord.cleaned_at >= lower)
    if upper is not None:
        stmt = stmt.where(CleaningRecord.cleaned_at < upper)

    return [to_cleaning_record_read(*row) for row in db.execute(stmt).all()]


def to_observation_read(
    observation: Observation,
    sector: Sector | None,
    objective: Objective | None,
    operator: User | None,
) -> ObservationRead:
    return ObservationRead(
        id=observation.id,
        sector_id=observation.sector_id,
        sector_name=sector.name if sector else None,
        objective_id=objective.id if objective else None,
        objective_name=objective.name if objective else None,
        operator_id=observation.operator_id,
        operator_name=operator.name if operator else None,
        text=observation.observation,
        created_at=observation.created_at,
    )


def _observation_query():
    return (
        select(Observation, Sector, Objective, User)
        .join(Sector, Sector.id == Observation.sector_id, isouter=True)
        .join(Objective, Objective.id == Sector.objective_id, isouter=True)
        .join(User, User.id == Observation.operator_id, isouter=True)
    )


def create_observation(db: Session, payload: ObservationCreate, *, operator_id: int) -> ObservationRead:
    sector = _get_sector(db, payload.sector_id)
    observation = Observation(
        sector_id=sector.id,
        operator_id=operator_id,
        observation=payload.text,
    )
    db.add(observation)
    db.commit()
    db.refresh(observation)

    row = db.execute(_observation_query().where(Observation.id == observation.id)).one()
    return to_observation_read(*row)


def list_observations(
    db: Session,
    *,
    sector_id: int | None = None,
    objective_id: int | None = None,
) -> list[ObservationRead]:
    stmt = _observation_query().order_by(Observation.created_at.desc(), Observation.id.desc())
    if sector_id is not None:
        stmt = stmt.where(Observation.sector_id == sector_id)
    if objective_id is not None:
        stmt = stmt.where(Sector.objective_id == objective_id)
    return [to_observation_read(*row) for row in db.execute(stmt).all()]
