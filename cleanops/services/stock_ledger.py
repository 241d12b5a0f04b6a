"""Supply consumption ledger.

Recording a usage row and decrementing the supply stock happen in one
transaction: either both writes are committed or neither is.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cleanops.errors import NotFoundError, StoreError
from cleanops.models import Objective, Supply, SupplyUsage, User
from cleanops.schemas import SupplyUsageCreate, SupplyUsageRead
from cleanops.services.cleaning import utc_day_bounds

logger = logging.getLogger("cleanops.stock_ledger")


def _decrement_stock(db: Session, *, supply_id: int, quantity: int) -> int:
    # Stock may go negative; no floor is applied.
    result = db.execute(
        update(Supply)
        .where(Supply.id == supply_id)
        .values(quantity_in_stock=Supply.quantity_in_stock - quantity)
    )
    return int(result.rowcount or 0)


def record_supply_usage(db: Session, payload: SupplyUsageCreate, *, operator_id: int) -> SupplyUsage:
    supply = db.get(Supply, payload.supply_id)
    if supply is None:
        raise NotFoundError("Supply not found")
    objective = db.get(Objective, payload.objective_id)
    if objective is None:
        raise NotFoundError("Objective not found")

    usage = SupplyUsage(
        supply_id=supply.id,
        objective_id=objective.id,
        operator_id=operator_id,
        quantity_used=payload.quantity_used,
    )
    try:
        db.add(usage)
        db.flush()
        updated_rows = _decrement_stock(db, supply_id=supply.id, quantity=payload.quantity_used)
        if updated_rows != 1:
            db.rollback()
            raise NotFoundError("Supply not found")
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "supply_usage_rolled_back",
            extra={
                "supply_id": payload.supply_id,
                "objective_id": payload.objective_id,
                "quantity_used": payload.quantity_used,
                "operator_id": operator_id,
            },
        )
        raise StoreError() from exc

    db.refresh(usage)
    db.refresh(supply)
    logger.info(
        "supply_usage_recorded",
        extra={
            "usage_id": usage.id,
            "supply_id": supply.id,
            "quantity_used": usage.quantity_used,
            "quantity_in_stock": supply.quantity_in_stock,
        },
    )
    return usage


def to_supply_usage_read(
    usage: SupplyUsage,
    supply: Supply | None,
    objective: Objective | None,
    operator: User | None,
) -> SupplyUsageRead:
    return SupplyUsageRead(
        id=usage.id,
        supply_id=usage.supply_id,
        supply_name=supply.name if supply else None,
        unit=supply.unit if supply else None,
        objective_id=usage.objective_id,
        objective_name=objective.name if objective else None,
        operator_id=usage.operator_id,
        operator_name=operator.name if operator else None,
        quantity_used=usage.quantity_used,
        used_at=usage.used_at,
    )


def get_supply_usage_read(db: Session, usage_id: int) -> SupplyUsageRead:
    row = db.execute(_usage_query().where(SupplyUsage.id == usage_id)).first()
    if row is None:
        raise NotFoundError("Supply usage not found")
    return to_supply_usage_read(*row)


def _usage_query():
    return (
        select(SupplyUsage, Supply, Objective, User)
        .join(Supply, Supply.id == SupplyUsage.supply_id, isouter=True)
        .join(Objective, Objective.id == SupplyUsage.objective_id, isouter=True)
        .join(User, User.id == SupplyUsage.operator_id, isouter=True)
    )


def list_supply_usage(
    db: Session,
    *,
    objective_id: int | None = None,
    supply_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[SupplyUsageRead]:
    stmt = _usage_query().order_by(SupplyUsage.used_at.desc(), SupplyUsage.id.desc())
    if objective_id is not None:
        stmt = stmt.where(SupplyUsage.objective_id == objective_id)
    if supply_id is not None:
        stmt = stmt.where(SupplyUsage.supply_id == supply_id)

    lower, upper = utc_day_bounds(start_date, end_date)
    if lower is not None:
        stmt = stmt.where(SupplyUsage.used_at >= lower)
    if upper is not None:
        stmt = stmt.where(SupplyUsage.used_at < upper)

    return [to_supply_usage_read(*row) for row in db.execute(stmt).all()]
