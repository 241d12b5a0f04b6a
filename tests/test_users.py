from __future__ import annotations

from sqlalchemy import select

from cleanops.models import AuditLog, User, UserRole
from cleanops.security import verify_password
from tests.support import SqliteAppTestCase


class UserManagementTests(SqliteAppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed_admin()
        self.admin = self.login_client("admin", "admin123")

    def test_create_user_hashes_password_and_hides_it(self) -> None:
        response = self.admin.post(
            "/api/users",
            json={"username": "olga", "password": "secret123", "name": "Olga", "role": "operator"},
        )

        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["username"], "olga")
        self.assertEqual(body["role"], "operator")
        self.assertNotIn("password", body)
        self.assertNotIn("password_hash", body)

        stored = self.db().scalar(select(User).where(User.username == "olga"))
        self.assertNotEqual(stored.password_hash, "secret123")
        self.assertTrue(verify_password("secret123", stored.password_hash))

        audit = self.db().scalar(select(AuditLog).where(AuditLog.action == "USER_CREATED"))
        self.assertIsNotNone(audit)
        self.assertEqual(audit.actor_id, "1")
        self.assertEqual(audit.entity_id, str(body["id"]))

    def test_role_defaults_to_operator(self) -> None:
        response = self.admin.post(
            "/api/users",
            json={"username": "olga", "password": "secret123", "name": "Olga"},
        )

        self.assertEqual(response.json()["role"], "operator")

    def test_duplicate_username_conflicts(self) -> None:
        self.create_user("olga")

        response = self.admin.post(
            "/api/users",
            json={"username": "olga", "password": "secret123", "name": "Other Olga"},
        )

        self.assert_error(response, 409, "CONFLICT")

    def test_invalid_role_is_rejected(self) -> None:
        response = self.admin.post(
            "/api/users",
            json={"username": "olga", "password": "secret123", "name": "Olga", "role": "owner"},
        )

        self.assert_error(response, 400, "VALIDATION_ERROR")

    def test_update_changes_role_and_password(self) -> None:
        user = self.create_user("olga")

        response = self.admin.put(
            f"/api/users/{user.id}",
            json={"name": "Olga Petrova", "role": "supervisor", "password": "changed123"},
        )

        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json(), {"success": True})
        stored = self.db().get(User, user.id)
        self.assertEqual(stored.name, "Olga Petrova")
        self.assertEqual(stored.role, UserRole.SUPERVISOR)
        self.assertTrue(verify_password("changed123", stored.password_hash))

    def test_update_missing_user_is_not_found(self) -> None:
        self.assert_error(self.admin.put("/api/users/999", json={"name": "Nobody"}), 404, "NOT_FOUND")

    def test_seed_admin_cannot_be_deleted(self) -> None:
        response = self.admin.delete("/api/users/1")

        error = self.assert_error(response, 400, "VALIDATION_ERROR")
        self.assertEqual(error["message"], "cannot delete admin user")
        self.assertIsNotNone(self.db().get(User, 1))

    def test_seed_admin_cannot_be_demoted(self) -> None:
        response = self.admin.put("/api/users/1", json={"role": "operator"})

        self.assert_error(response, 400, "VALIDATION_ERROR")
        self.assertEqual(self.db().get(User, 1).role, UserRole.ADMIN)

    def test_delete_user_and_repeat_delete_succeed(self) -> None:
        user = self.create_user("olga")

        first = self.admin.delete(f"/api/users/{user.id}")
        second = self.admin.delete(f"/api/users/{user.id}")

        self.assertEqual(first.json(), {"success": True})
        self.assertEqual(second.json(), {"success": True})
        self.assertIsNone(self.db().get(User, user.id))

    def test_listing_is_sorted_by_name(self) -> None:
        self.create_user("zed", name="Zed")
        self.create_user("ann", name="Ann")

        names = [item["name"] for item in self.admin.get("/api/users").json()]

        self.assertEqual(names, ["Administrator", "Ann", "Zed"])

    def test_forbidden_takes_precedence_over_seed_admin_rule(self) -> None:
        self.create_user("sam", role=UserRole.SUPERVISOR)
        supervisor = self.login_client("sam")

        self.assert_error(supervisor.delete("/api/users/1"), 403, "FORBIDDEN")
        self.assert_error(supervisor.put("/api/users/1", json={"role": "operator"}), 403, "FORBIDDEN")
        self.assertIsNotNone(self.db().get(User, 1))


class RoleChangeSessionTests(SqliteAppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed_admin()
        self.boss = self.create_user("boss", role=UserRole.ADMIN, name="Boss")
        self.admin = self.login_client("admin", "admin123")
        self.boss_client = self.login_client("boss")
        self.new_user = {"username": "newbie", "password": "secret123", "name": "Newbie"}

    def test_demoted_row_loses_admin_powers_on_open_session(self) -> None:
        with self.session_factory() as db:
            db.get(User, self.boss.id).role = UserRole.OPERATOR
            db.commit()

        self.assert_error(self.boss_client.post("/api/users", json=self.new_user), 403, "FORBIDDEN")
        self.assertEqual(self.boss_client.get("/api/session").json()["userRole"], "operator")

    def test_renamed_user_sees_new_name_on_open_session(self) -> None:
        self.admin.put(f"/api/users/{self.boss.id}", json={"name": "Big Boss"})

        self.assertEqual(self.boss_client.get("/api/session").json()["userName"], "Big Boss")

    def test_demotion_through_api_revokes_open_sessions(self) -> None:
        response = self.admin.put(f"/api/users/{self.boss.id}", json={"role": "operator"})

        self.assertEqual(response.status_code, 200, response.text)
        self.assert_error(self.boss_client.post("/api/users", json=self.new_user), 401, "UNAUTHENTICATED")
        self.assertIsNone(self.db().scalar(select(User).where(User.username == "newbie")))

        operator = self.login_client("boss")
        self.assert_error(operator.post("/api/users", json=self.new_user), 403, "FORBIDDEN")

    def test_password_change_revokes_open_sessions(self) -> None:
        self.admin.put(f"/api/users/{self.boss.id}", json={"password": "changed123"})

        self.assert_error(self.boss_client.get("/api/session"), 401, "UNAUTHENTICATED")
        self.login_client("boss", "changed123")

    def test_own_password_change_keeps_current_session(self) -> None:
        other_admin_session = self.login_client("admin", "admin123")

        response = self.admin.put("/api/users/1", json={"password": "changed123"})

        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(self.admin.get("/api/session").status_code, 200)
        self.assert_error(other_admin_session.get("/api/session"), 401, "UNAUTHENTICATED")

    def test_deleted_user_session_is_unauthenticated(self) -> None:
        self.admin.delete(f"/api/users/{self.boss.id}")

        self.assert_error(self.boss_client.get("/api/session"), 401, "UNAUTHENTICATED")
