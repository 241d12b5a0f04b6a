from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from cleanops.models import User, UserSession
from cleanops.settings import get_settings

SESSION_TOKEN_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    db: Session,
    *,
    user: User,
    email: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
    now_utc: datetime | None = None,
) -> tuple[str, UserSession]:
    now = now_utc or _utcnow()
    token = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
    session_row = UserSession(
        token_hash=hash_session_token(token),
        user_id=user.id,
        user_role=user.role.value,
        user_name=user.name,
        user_email=email if email is not None else user.email,
        issued_at=now,
        expires_at=now + timedelta(hours=get_settings().session_ttl_hours),
        revoked_at=None,
        last_ip=ip,
        last_user_agent=user_agent,
    )
    db.add(session_row)
    db.commit()
    db.refresh(session_row)
    return token, session_row


def resolve_session(db: Session, token: str, *, now_utc: datetime | None = None) -> UserSession | None:
    session_row = db.scalar(select(UserSession).where(UserSession.token_hash == hash_session_token(token)))
    if session_row is None or session_row.revoked_at is not None:
        return None
    if _as_utc(session_row.expires_at) <= (now_utc or _utcnow()):
        return None
    return session_row


def revoke_session(db: Session, token: str, *, now_utc: datetime | None = None) -> UserSession | None:
    session_row = db.scalar(select(UserSession).where(UserSession.token_hash == hash_session_token(token)))
    if session_row is None or session_row.revoked_at is not None:
        return None
    session_row.revoked_at = now_utc or _utcnow()
    db.commit()
    return session_row


def revoke_user_sessions(
    db: Session,
    user_id: int,
    *,
    keep_session_id: int | None = None,
    now_utc: datetime | None = None,
) -> int:
    """Revoke every open session of a user. The caller commits."""
    stmt = (
        update(UserSession)
        .where(UserSession.user_id == user_id, UserSession.revoked_at.is_(None))
        .values(revoked_at=now_utc or _utcnow())
    )
    if keep_session_id is not None:
        stmt = stmt.where(UserSession.id != keep_session_id)
    result = db.execute(stmt)
    return result.rowcount or 0
