from __future__ import annotations

import json
import logging
import unittest

from sqlalchemy import func, select

from cleanops.logging_utils import JsonFormatter
from cleanops.models import User, UserRole
from cleanops.security import verify_password
from cleanops.services.bootstrap import SEED_ADMIN_USER_ID, ensure_seed_admin
from tests.support import SqliteAppTestCase


class HealthEndpointTests(SqliteAppTestCase):
    def test_health_is_public(self) -> None:
        response = self.client.get("/api/health")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertIn("schema_guard", body)
        self.assertTrue(response.headers["X-Request-Id"])

    def test_request_id_is_echoed(self) -> None:
        response = self.client.get("/api/session", headers={"X-Request-Id": "req-123"})

        error = self.assert_error(response, 401, "UNAUTHENTICATED")
        self.assertEqual(error["request_id"], "req-123")

    def test_unknown_route_uses_error_envelope(self) -> None:
        response = self.client.get("/api/does-not-exist")

        self.assert_error(response, 404, "NOT_FOUND")


class SeedAdminTests(SqliteAppTestCase):
    def test_seed_admin_created_once_on_empty_store(self) -> None:
        admin_user = self.seed_admin()

        self.assertEqual(admin_user.id, SEED_ADMIN_USER_ID)
        self.assertEqual(admin_user.role, UserRole.ADMIN)
        self.assertTrue(verify_password("admin123", admin_user.password_hash))

        with self.session_factory() as db:
            self.assertIsNone(ensure_seed_admin(db))
            self.assertEqual(db.scalar(select(func.count(User.id))), 1)

    def test_existing_users_suppress_seeding(self) -> None:
        self.create_user("olga")

        with self.session_factory() as db:
            self.assertIsNone(ensure_seed_admin(db))
            self.assertIsNone(db.scalar(select(User).where(User.username == "admin")))


class JsonFormatterTests(unittest.TestCase):
    def test_extra_fields_are_serialized(self) -> None:
        record = logging.LogRecord("cleanops.request", logging.INFO, __file__, 1, "request_complete", None, None)
        record.request_id = "abc"
        record.status_code = 200

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["message"], "request_complete")
        self.assertEqual(payload["logger"], "cleanops.request")
        self.assertEqual(payload["request_id"], "abc")
        self.assertEqual(payload["status_code"], 200)
        self.assertNotIn("args", payload)


if __name__ == "__main__":
    unittest.main()
