from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from cleanops.audit import audit_user_action
from cleanops.db import get_db
from cleanops.errors import NotFoundError
from cleanops.models import Client, Objective, Sector
from cleanops.schemas import (
    ClientCreate,
    ClientRead,
    ClientUpdate,
    ObjectiveCreate,
    ObjectiveRead,
    ObjectiveUpdate,
    SectorCreate,
    SectorRead,
    SectorUpdate,
    SuccessResponse,
)
from cleanops.security import STAFF_ROLES, SessionContext, require_roles, require_session

router = APIRouter(tags=["sites"])


def _to_objective_read(objective: Objective) -> ObjectiveRead:
    return ObjectiveRead(
        id=objective.id,
        name=objective.name,
        client_id=objective.client_id,
        client_name=objective.client.name if objective.client else None,
        address=objective.address,
        description=objective.description,
        created_at=objective.created_at,
    )


def _to_sector_read(sector: Sector) -> SectorRead:
    return SectorRead(
        id=sector.id,
        objective_id=sector.objective_id,
        objective_name=sector.objective.name if sector.objective else None,
        name=sector.name,
        description=sector.description,
        created_at=sector.created_at,
    )


def _resolve_client_id(db: Session, client_id: int | None) -> int | None:
    if client_id is None:
        return None
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client.id


@router.get("/api/clients", response_model=list[ClientRead])
def list_clients(
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[Client]:
    return list(db.scalars(select(Client).order_by(Client.name.asc(), Client.id.asc())).all())


@router.post("/api/clients", response_model=ClientRead)
def create_client(
    payload: ClientCreate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> Client:
    client = Client(**payload.model_dump())
    db.add(client)
    db.commit()
    db.refresh(client)
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="CLIENT_CREATED",
        entity_type="client",
        entity_id=client.id,
        details={"name": client.name},
    )
    return client


@router.put("/api/clients/{client_id}", response_model=SuccessResponse)
def update_client(
    client_id: int,
    payload: ClientUpdate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    for key, value in payload.model_dump().items():
        setattr(client, key, value)
    db.commit()
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="CLIENT_UPDATED",
        entity_type="client",
        entity_id=client.id,
        details={"name": client.name},
    )
    return SuccessResponse(success=True)


@router.delete("/api/clients/{client_id}", response_model=SuccessResponse)
def delete_client(
    client_id: int,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    client = db.get(Client, client_id)
    if client is not None:
        db.delete(client)
        db.commit()
        audit_user_action(
            db,
            request=request,
            user_id=context.user_id,
            action="CLIENT_DELETED",
            entity_type="client",
            entity_id=client_id,
        )
    return SuccessResponse(success=True)


@router.get("/api/objectives", response_model=list[ObjectiveRead])
def list_objectives(
    client_id: int | None = Query(default=None, ge=1),
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[ObjectiveRead]:
    stmt = select(Objective).options(selectinload(Objective.client)).order_by(Objective.name.asc(), Objective.id.asc())
    if client_id is not None:
        stmt = stmt.where(Objective.client_id == client_id)
    return [_to_objective_read(item) for item in db.scalars(stmt).all()]


@router.post("/api/objectives", response_model=ObjectiveRead)
def create_objective(
    payload: ObjectiveCreate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> ObjectiveRead:
    objective = Objective(
        name=payload.name,
        client_id=_resolve_client_id(db, payload.client_id),
        address=payload.address,
        description=payload.description,
    )
    db.add(objective)
    db.commit()
    db.refresh(objective)
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="OBJECTIVE_CREATED",
        entity_type="objective",
        entity_id=objective.id,
        details={"name": objective.name, "client_id": objective.client_id},
    )
    return _to_objective_read(objective)


@router.put("/api/objectives/{objective_id}", response_model=SuccessResponse)
def update_objective(
    objective_id: int,
    payload: ObjectiveUpdate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    objective = db.get(Objective, objective_id)
    if objective is None:
        raise NotFoundError("Objective not found")
    objective.name = payload.name
    objective.client_id = _resolve_client_id(db, payload.client_id)
    objective.address = payload.address
    objective.description = payload.description
    db.commit()
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="OBJECTIVE_UPDATED",
        entity_type="objective",
        entity_id=objective.id,
        details={"name": objective.name, "client_id": objective.client_id},
    )
    return SuccessResponse(success=True)


@router.delete("/api/objectives/{objective_id}", response_model=SuccessResponse)
def delete_objective(
    objective_id: int,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    objective = db.get(Objective, objective_id)
    if objective is not None:
        db.delete(objective)
        db.commit()
        audit_user_action(
            db,
            request=request,
            user_id=context.user_id,
            action="OBJECTIVE_DELETED",
            entity_type="objective",
            entity_id=objective_id,
        )
    return SuccessResponse(success=True)


@router.get("/api/objectives/{objective_id}/sectors", response_model=list[SectorRead])
def list_objective_sectors(
    objective_id: int,
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[SectorRead]:
    if db.get(Objective, objective_id) is None:
        raise NotFoundError("Objective not found")
    stmt = (
        select(Sector)
        .options(selectinload(Sector.objective))
        .where(Sector.objective_id == objective_id)
        .order_by(Sector.name.asc(), Sector.id.asc())
    )
    return [_to_sector_read(item) for item in db.scalars(stmt).all()]


@router.post("/api/sectors", response_model=SectorRead)
def create_sector(
    payload: SectorCreate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SectorRead:
    objective = db.get(Objective, payload.objective_id)
    if objective is None:
        raise NotFoundError("Objective not found")
    sector = Sector(objective_id=objective.id, name=payload.name, description=payload.description)
    db.add(sector)
    db.commit()
    db.refresh(sector)
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="SECTOR_CREATED",
        entity_type="sector",
        entity_id=sector.id,
        details={"name": sector.name, "objective_id": sector.objective_id},
    )
    return _to_sector_read(sector)


@router.put("/api/sectors/{sector_id}", response_model=SuccessResponse)
def update_sector(
    sector_id: int,
    payload: SectorUpdate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    sector = db.get(Sector, sector_id)
    if sector is None:
        raise NotFoundError("Sector not found")
    sector.name = payload.name
    sector.description = payload.description
    db.commit()
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="SECTOR_UPDATED",
        entity_type="sector",
        entity_id=sector.id,
        details={"name": sector.name},
    )
    return SuccessResponse(success=True)


@router.delete("/api/sectors/{sector_id}", response_model=SuccessResponse)
def delete_sector(
    sector_id: int,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    sector = db.get(Sector, sector_id)
    if sector is not None:
        db.delete(sector)
        db.commit()
        audit_user_action(
            db,
            request=request,
            user_id=context.user_id,
            action="SECTOR_DELETED",
            entity_type="sector",
            entity_id=sector_id,
        )
    return SuccessResponse(success=True)
