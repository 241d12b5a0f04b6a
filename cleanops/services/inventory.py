from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from cleanops.errors import InvalidRequestError, NotFoundError
from cleanops.models import Supply
from cleanops.schemas import SupplyCreate, SupplyRead, SupplyUpdate


def is_low_stock(quantity_in_stock: int | float, min_stock_level: int | float) -> bool:
    return quantity_in_stock <= min_stock_level


def stock_status(quantity_in_stock: int | float, min_stock_level: int | float) -> str:
    return "low" if is_low_stock(quantity_in_stock, min_stock_level) else "ok"


def to_supply_read(supply: Supply) -> SupplyRead:
    return SupplyRead(
        id=supply.id,
        name=supply.name,
        description=supply.description,
        unit=supply.unit,
        quantity_in_stock=supply.quantity_in_stock,
        min_stock_level=supply.min_stock_level,
        is_low_stock=is_low_stock(supply.quantity_in_stock, supply.min_stock_level),
        stock_status=stock_status(supply.quantity_in_stock, supply.min_stock_level),
        created_at=supply.created_at,
    )


def list_supplies(db: Session) -> list[SupplyRead]:
    stmt = select(Supply).order_by(Supply.name.asc(), Supply.id.asc())
    return [to_supply_read(item) for item in db.scalars(stmt).all()]


def list_low_stock_supplies(db: Session) -> list[SupplyRead]:
    stmt = (
        select(Supply)
        .where(Supply.quantity_in_stock <= Supply.min_stock_level)
        .order_by(Supply.name.asc(), Supply.id.asc())
    )
    return [to_supply_read(item) for item in db.scalars(stmt).all()]


def create_supply(db: Session, payload: SupplyCreate) -> Supply:
    supply = Supply(
        name=payload.name,
        description=payload.description,
        unit=payload.unit,
        quantity_in_stock=payload.quantity_in_stock,
        min_stock_level=payload.min_stock_level,
    )
    db.add(supply)
    db.commit()
    db.refresh(supply)
    return supply


def update_supply(db: Session, supply_id: int, payload: SupplyUpdate) -> Supply:
    supply = db.get(Supply, supply_id)
    if supply is None:
        raise NotFoundError("Supply not found")

    if payload.quantity_in_stock is not None:
        # Restocking only; consumption goes through supply usage records.
        if payload.quantity_in_stock < supply.quantity_in_stock:
            raise InvalidRequestError("quantity_in_stock can only be lowered by recording supply usage")
        supply.quantity_in_stock = payload.quantity_in_stock

    # Omitted fields keep their stored value; an explicit null clears description or unit.
    supply.name = payload.name
    if "description" in payload.model_fields_set:
        supply.description = payload.description
    if "unit" in payload.model_fields_set:
        supply.unit = payload.unit
    if payload.min_stock_level is not None:
        supply.min_stock_level = payload.min_stock_level
    db.commit()
    return supply


def delete_supply(db: Session, supply_id: int) -> None:
    supply = db.get(Supply, supply_id)
    if supply is None:
        return
    db.delete(supply)
    db.commit()
