#!/usr/bin/env python
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

from cleanops.services.schema_guard import ALEMBIC_HEAD
from cleanops.settings import get_settings

EXPECTED_HEAD = ALEMBIC_HEAD

REQUIRED_TABLES = (
    "users",
    "clients",
    "objectives",
    "sectors",
    "supplies",
    "cleaning_records",
    "observations",
    "supply_usage",
    "messages",
    "user_sessions",
    "audit_logs",
)

ORPHAN_CHECKS: dict[str, str] = {
    "cleaning_record_orphan_sector": """
        select c.id
        from cleaning_records c
        left join sectors s on s.id = c.sector_id
        where s.id is null
        limit 20
    """,
    "supply_usage_orphan_supply": """
        select u.id
        from supply_usage u
        left join supplies s on s.id = u.supply_id
        where s.id is null
        limit 20
    """,
    "supply_usage_orphan_objective": """
        select u.id
        from supply_usage u
        left join objectives o on o.id = u.objective_id
        where o.id is null
        limit 20
    """,
    "sector_orphan_objective": """
        select s.id
        from sectors s
        left join objectives o on o.id = s.objective_id
        where o.id is null
        limit 20
    """,
}


def run(engine: Engine | None = None) -> dict[str, Any]:
    if engine is None:
        engine = create_engine(get_settings().database_url)

    report: dict[str, Any] = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "dialect": engine.dialect.name,
        "checks": [],
    }

    def add(name: str, status: str, details: dict[str, Any]) -> None:
        report["checks"].append({"name": name, "status": status, "details": details})

    tables = set(inspect(engine).get_table_names())

    with engine.connect() as conn:
        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = list(conn.execute(text("select version_num from alembic_version")).scalars())
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
        add("missing_tables", "fail" if missing_tables else "ok", {"tables": missing_tables})
        if missing_tables:
            return report

        for check_name, query in ORPHAN_CHECKS.items():
            orphan_ids = list(conn.execute(text(query)).scalars())
            add(check_name, "fail" if orphan_ids else "ok", {"sample_ids": orphan_ids})

        # Usage may legitimately drive stock below zero; flag it for a restock.
        negative_stock = conn.execute(
            text(
                """
                select id, name, quantity_in_stock
                from supplies
                where quantity_in_stock < 0
                order by id
                limit 20
                """
            )
        ).fetchall()
        add(
            "negative_stock",
            "warn" if negative_stock else "ok",
            {"rows": [list(row) for row in negative_stock]},
        )

        admin_count = conn.execute(text("select count(*) from users where role = 'admin'")).scalar_one()
        add("admin_user_present", "ok" if admin_count else "fail", {"admin_count": admin_count})

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2, default=str))
