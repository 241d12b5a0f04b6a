from __future__ import annotations

import logging

from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from cleanops.models import User, UserRole
from cleanops.security import hash_password
from cleanops.settings import get_settings

logger = logging.getLogger("cleanops.bootstrap")

SEED_ADMIN_USER_ID = 1


def ensure_seed_admin(db: Session) -> User | None:
    """Create the protected admin (id=1) when the users table is empty."""
    existing_users = db.scalar(select(func.count(User.id))) or 0
    if existing_users:
        return None

    settings = get_settings()
    if not settings.seed_admin_password:
        logger.warning("seed_admin_skipped", extra={"reason": "SEED_ADMIN_PASSWORD_EMPTY"})
        return None

    admin_user = User(
        id=SEED_ADMIN_USER_ID,
        username=settings.seed_admin_username.strip() or "admin",
        password_hash=hash_password(settings.seed_admin_password),
        name=settings.seed_admin_name.strip() or "Administrator",
        role=UserRole.ADMIN,
    )
    db.add(admin_user)
    db.flush()
    if db.get_bind().dialect.name == "postgresql":
        # Explicit id insert does not advance the serial sequence.
        db.execute(text("SELECT setval(pg_get_serial_sequence('users', 'id'), (SELECT MAX(id) FROM users))"))
    db.commit()
    db.refresh(admin_user)

    logger.info("seed_admin_created", extra={"user_id": admin_user.id, "username": admin_user.username})
    return admin_user
