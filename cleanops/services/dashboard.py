from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cleanops.models import Client, Objective, Supply, User, UserRole
from cleanops.schemas import DashboardStatsRead


def get_dashboard_stats(db: Session) -> DashboardStatsRead:
    total_operators = db.scalar(select(func.count(User.id)).where(User.role == UserRole.OPERATOR))
    total_clients = db.scalar(select(func.count(Client.id)))
    total_objectives = db.scalar(select(func.count(Objective.id)))
    low_supplies = db.scalar(
        select(func.count(Supply.id)).where(Supply.quantity_in_stock <= Supply.min_stock_level)
    )
    return DashboardStatsRead(
        total_operators=int(total_operators or 0),
        total_clients=int(total_clients or 0),
        total_objectives=int(total_objectives or 0),
        low_supplies=int(low_supplies or 0),
    )
