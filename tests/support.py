from __future__ import annotations

import unittest
from collections.abc import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cleanops.db import Base, enable_sqlite_foreign_keys, get_db
from cleanops.main import app
from cleanops.models import User, UserRole
from cleanops.security import hash_password, reset_login_attempts
from cleanops.services.bootstrap import ensure_seed_admin
from cleanops.settings import get_settings


def session_cookie_header(token: str) -> dict[str, str]:
    return {"Cookie": f"{get_settings().session_cookie_name}={token}"}


class SqliteAppTestCase(unittest.TestCase):
    """Runs the real app against a fresh in-memory SQLite database per test."""

    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        enable_sqlite_foreign_keys(self.engine)
        Base.metadata.create_all(self.engine)
        self.session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

        def _override_get_db() -> Generator[Session, None, None]:
            db = self.session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _override_get_db
        reset_login_attempts()
        self.client = TestClient(app)

    def tearDown(self) -> None:
        # Close sessions opened via db() before the shared connection is disposed.
        self.doCleanups()
        app.dependency_overrides.clear()
        reset_login_attempts()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def db(self) -> Session:
        session = self.session_factory()
        self.addCleanup(session.close)
        return session

    def seed_admin(self) -> User:
        with self.session_factory() as db:
            admin_user = ensure_seed_admin(db)
        assert admin_user is not None
        return admin_user

    def create_user(
        self,
        username: str,
        *,
        password: str = "secret123",
        role: UserRole = UserRole.OPERATOR,
        name: str | None = None,
        email: str | None = None,
    ) -> User:
        with self.session_factory() as db:
            user = User(
                username=username,
                password_hash=hash_password(password),
                name=name or username.title(),
                role=role,
                email=email,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            return user

    def login_client(self, username: str, password: str = "secret123") -> TestClient:
        client = TestClient(app)
        response = client.post("/api/login", json={"username": username, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return client

    def assert_error(self, response, status_code: int, code: str) -> dict:  # type: ignore[no-untyped-def]
        self.assertEqual(response.status_code, status_code, response.text)
        body = response.json()
        self.assertEqual(body["error"]["code"], code)
        self.assertEqual(body["error"]["request_id"], response.headers["X-Request-Id"])
        return body["error"]
