from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from cleanops.db import Base
from cleanops.models import AuditActorType, UserRole

ALEMBIC_HEAD = "0002_sessions_and_audit"


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "issue_count": len(self.issues),
            "warning_count": len(self.warnings),
            "expected_revision": ALEMBIC_HEAD,
        }


def _model_columns() -> dict[str, set[str]]:
    required = {table.name: {column.name for column in table.columns} for table in Base.metadata.sorted_tables}
    required["alembic_version"] = {"version_num"}
    return required


# Every mapped table with every mapped column; a partial migration shows up here.
REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = _model_columns()

REQUIRED_ENUM_VALUES: dict[str, set[str]] = {
    "user_role": {item.value for item in UserRole},
    "audit_actor_type": {item.value for item in AuditActorType},
}


def _check_columns(inspector: Any, issues: list[str]) -> None:
    for table_name in sorted(REQUIRED_TABLE_COLUMNS):
        try:
            present = {str(column.get("name")) for column in inspector.get_columns(table_name)}
        except Exception as exc:  # pragma: no cover - reported, not raised
            issues.append(f"TABLE_UNREADABLE:{table_name}:{exc.__class__.__name__}")
            continue

        missing = sorted(REQUIRED_TABLE_COLUMNS[table_name] - present)
        if missing:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing)}")


def _read_enum_labels(inspector: Any, warnings: list[str]) -> dict[str, set[str]] | None:
    # Only PostgreSQL inspectors expose native enums.
    if not hasattr(inspector, "get_enums"):
        warnings.append("ENUM_INSPECTION_UNSUPPORTED")
        return None
    try:
        reflected = inspector.get_enums() or []
    except Exception as exc:  # pragma: no cover - reported, not raised
        warnings.append(f"ENUM_INSPECTION_FAILED:{exc.__class__.__name__}")
        return None

    return {
        str(item["name"]): {str(label) for label in item.get("labels") or []}
        for item in reflected
        if item.get("name")
    }


def _check_enums(labels_by_name: dict[str, set[str]], issues: list[str], warnings: list[str]) -> None:
    for enum_name, expected in REQUIRED_ENUM_VALUES.items():
        if enum_name not in labels_by_name:
            warnings.append(f"ENUM_NOT_FOUND:{enum_name}")
            continue
        missing = sorted(expected - labels_by_name[enum_name])
        if missing:
            issues.append(f"MISSING_ENUM_VALUES:{enum_name}:{','.join(missing)}")


def _check_revision(engine: Engine, issues: list[str], warnings: list[str]) -> None:
    try:
        with engine.connect() as connection:
            row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
    except Exception as exc:  # pragma: no cover - reported, not raised
        issues.append(f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}")
        return

    revision = str(row).strip() if row is not None else ""
    if not revision:
        issues.append("ALEMBIC_VERSION_EMPTY")
    elif revision != ALEMBIC_HEAD:
        warnings.append(f"ALEMBIC_VERSION_NOT_HEAD:{revision}")


def verify_runtime_schema(engine: Engine) -> SchemaGuardResult:
    """Compare the live database with the mapped models and the migration head.

    Issues make the result fail; warnings (no enum support, an unknown revision)
    are reported but do not.
    """
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)

    _check_columns(inspector, issues)
    labels_by_name = _read_enum_labels(inspector, warnings)
    if labels_by_name is not None:
        _check_enums(labels_by_name, issues, warnings)
    _check_revision(engine, issues, warnings)

    return SchemaGuardResult(
        ok=not issues,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
    )
