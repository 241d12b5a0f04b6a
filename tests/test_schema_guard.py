from __future__ import annotations

import unittest
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from cleanops.db import Base
from cleanops.services.schema_guard import ALEMBIC_HEAD, REQUIRED_TABLE_COLUMNS, verify_runtime_schema

ALL_ENUMS = [
    {"name": "user_role", "labels": ["operator", "supervisor", "admin"]},
    {"name": "audit_actor_type", "labels": ["USER", "SYSTEM"]},
]


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, *, columns_by_table: dict[str, set[str]], enums: list[dict[str, object]]):
        self._columns_by_table = columns_by_table
        self._enums = enums

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_enums(self):  # type: ignore[no-untyped-def]
        return self._enums


class _FakeInspectorWithoutEnums:
    def __init__(self, columns_by_table: dict[str, set[str]]):
        self._columns_by_table = columns_by_table

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        return [{"name": item} for item in self._columns_by_table[table_name]]


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table={name: set(columns) for name, columns in REQUIRED_TABLE_COLUMNS.items()},
            enums=ALL_ENUMS,
        )
        fake_engine = _FakeEngine(ALEMBIC_HEAD)

        with patch("cleanops.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])

    def test_verify_runtime_schema_reports_missing_columns(self) -> None:
        columns_by_table = {name: set(columns) for name, columns in REQUIRED_TABLE_COLUMNS.items()}
        columns_by_table["supplies"].discard("min_stock_level")
        columns_by_table["messages"].discard("read")
        fake_inspector = _FakeInspector(
            columns_by_table=columns_by_table,
            enums=[{"name": "user_role", "labels": ["operator", "admin"]}, ALL_ENUMS[1]],
        )
        fake_engine = _FakeEngine("")

        with patch("cleanops.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn("MISSING_COLUMNS:supplies:min_stock_level", result.issues)
        self.assertIn("MISSING_COLUMNS:messages:read", result.issues)
        self.assertIn("MISSING_ENUM_VALUES:user_role:supervisor", result.issues)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)

    def test_inspector_without_enum_support_only_warns(self) -> None:
        fake_inspector = _FakeInspectorWithoutEnums(
            {name: set(columns) for name, columns in REQUIRED_TABLE_COLUMNS.items()}
        )
        fake_engine = _FakeEngine(ALEMBIC_HEAD)

        with patch("cleanops.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.warnings, ["ENUM_INSPECTION_UNSUPPORTED"])

    def test_unknown_revision_is_a_warning(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table={name: set(columns) for name, columns in REQUIRED_TABLE_COLUMNS.items()},
            enums=ALL_ENUMS,
        )

        with patch("cleanops.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine("0001_initial"))  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.warnings, ["ALEMBIC_VERSION_NOT_HEAD:0001_initial"])

    def test_required_columns_follow_the_models(self) -> None:
        self.assertIn("quantity_in_stock", REQUIRED_TABLE_COLUMNS["supplies"])
        self.assertIn("token_hash", REQUIRED_TABLE_COLUMNS["user_sessions"])
        self.assertEqual(REQUIRED_TABLE_COLUMNS["alembic_version"], {"version_num"})

    def test_fresh_sqlite_schema_without_migrations_fails(self) -> None:
        engine = create_engine("sqlite://", poolclass=StaticPool)
        Base.metadata.create_all(engine)
        self.addCleanup(engine.dispose)

        result = verify_runtime_schema(engine)

        self.assertFalse(result.ok)
        self.assertTrue(any(":alembic_version:" in item for item in result.issues))
        self.assertTrue(any(item.startswith("ALEMBIC_VERSION_CHECK_FAILED:") for item in result.issues))
        self.assertEqual(result.to_dict()["issue_count"], len(result.issues))


if __name__ == "__main__":
    unittest.main()
