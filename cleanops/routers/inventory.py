from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from cleanops.audit import audit_user_action
from cleanops.db import get_db
from cleanops.schemas import (
    SuccessResponse,
    SupplyCreate,
    SupplyRead,
    SupplyUpdate,
    SupplyUsageCreate,
    SupplyUsageRead,
)
from cleanops.security import STAFF_ROLES, SessionContext, require_roles, require_session
from cleanops.services.inventory import (
    create_supply,
    delete_supply,
    list_low_stock_supplies,
    list_supplies,
    to_supply_read,
    update_supply,
)
from cleanops.services.stock_ledger import get_supply_usage_read, list_supply_usage, record_supply_usage

router = APIRouter(tags=["inventory"])


@router.get("/api/supplies", response_model=list[SupplyRead])
def get_supplies(
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[SupplyRead]:
    return list_supplies(db)


@router.get("/api/supplies/low-stock", response_model=list[SupplyRead])
def get_low_stock_supplies(
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[SupplyRead]:
    return list_low_stock_supplies(db)


@router.post("/api/supplies", response_model=SupplyRead)
def post_supply(
    payload: SupplyCreate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SupplyRead:
    supply = create_supply(db, payload)
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="SUPPLY_CREATED",
        entity_type="supply",
        entity_id=supply.id,
        details={"name": supply.name, "quantity_in_stock": supply.quantity_in_stock},
    )
    return to_supply_read(supply)


@router.put("/api/supplies/{supply_id}", response_model=SuccessResponse)
def put_supply(
    supply_id: int,
    payload: SupplyUpdate,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    supply = update_supply(db, supply_id, payload)
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="SUPPLY_UPDATED",
        entity_type="supply",
        entity_id=supply.id,
        details={
            "name": supply.name,
            "quantity_in_stock": supply.quantity_in_stock,
            "min_stock_level": supply.min_stock_level,
        },
    )
    return SuccessResponse(success=True)


@router.delete("/api/supplies/{supply_id}", response_model=SuccessResponse)
def remove_supply(
    supply_id: int,
    request: Request,
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    delete_supply(db, supply_id)
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="SUPPLY_DELETED",
        entity_type="supply",
        entity_id=supply_id,
    )
    return SuccessResponse(success=True)


@router.post("/api/supply-usage", response_model=SupplyUsageRead)
def post_supply_usage(
    payload: SupplyUsageCreate,
    request: Request,
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> SupplyUsageRead:
    usage = record_supply_usage(db, payload, operator_id=context.user_id)
    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="SUPPLY_USAGE_RECORDED",
        entity_type="supply_usage",
        entity_id=usage.id,
        details={
            "supply_id": usage.supply_id,
            "objective_id": usage.objective_id,
            "quantity_used": usage.quantity_used,
        },
    )
    return get_supply_usage_read(db, usage.id)


@router.get("/api/supply-usage", response_model=list[SupplyUsageRead])
def get_supply_usage(
    objective_id: int | None = Query(default=None, ge=1),
    supply_id: int | None = Query(default=None, ge=1),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[SupplyUsageRead]:
    return list_supply_usage(
        db,
        objective_id=objective_id,
        supply_id=supply_id,
        start_date=start_date,
        end_date=end_date,
    )
