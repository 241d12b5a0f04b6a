from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from passlib.exc import UnknownHashError
from sqlalchemy.orm import Session

from cleanops.db import get_db
from cleanops.errors import ApiError, ForbiddenError, InvalidCredentialsError, UnauthenticatedError
from cleanops.models import User, UserRole
from cleanops.services.sessions import resolve_session
from cleanops.settings import get_settings, is_identity_sign_in_enabled

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Never produced by bcrypt, so verify_password() rejects it.
UNUSABLE_PASSWORD_HASH = "!external-identity"

_LOCK = threading.Lock()
_FAILED_ATTEMPTS: dict[str, deque[datetime]] = defaultdict(deque)
_MAX_ATTEMPTS = 10
_ATTEMPT_WINDOW = timedelta(minutes=10)

ANY_ROLE: tuple[UserRole, ...] = (UserRole.ADMIN, UserRole.SUPERVISOR, UserRole.OPERATOR)
STAFF_ROLES: tuple[UserRole, ...] = (UserRole.ADMIN, UserRole.SUPERVISOR)
ADMIN_ONLY: tuple[UserRole, ...] = (UserRole.ADMIN,)


@dataclass(frozen=True, slots=True)
class SessionContext:
    user_id: int
    role: UserRole
    name: str
    email: str | None = None
    session_id: int | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cleanup_attempts(ip: str, now: datetime) -> None:
    queue = _FAILED_ATTEMPTS[ip]
    threshold = now - _ATTEMPT_WINDOW
    while queue and queue[0] < threshold:
        queue.popleft()
    if not queue:
        _FAILED_ATTEMPTS.pop(ip, None)


def ensure_login_attempt_allowed(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        queue = _FAILED_ATTEMPTS.get(ip, deque())
        if len(queue) >= _MAX_ATTEMPTS:
            raise ApiError(
                status_code=429,
                code="TOO_MANY_ATTEMPTS",
                message="Too many failed login attempts. Please try again later.",
            )


def register_login_failure(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        _FAILED_ATTEMPTS[ip].append(now)


def register_login_success(ip: str) -> None:
    with _LOCK:
        _FAILED_ATTEMPTS.pop(ip, None)


def reset_login_attempts() -> None:
    with _LOCK:
        _FAILED_ATTEMPTS.clear()


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError, UnknownHashError):
        return False


def decode_identity_assertion(token: str) -> dict[str, Any]:
    """Verify a JWT issued by the external identity provider and return its claims."""
    if not is_identity_sign_in_enabled():
        raise ForbiddenError("Identity provider sign-in is disabled.")

    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=["HS256"],
            audience=settings.identity_jwt_audience,
            issuer=settings.identity_jwt_issuer,
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError as exc:
        raise InvalidCredentialsError("Identity assertion is invalid.") from exc

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise InvalidCredentialsError("Identity assertion subject is invalid.")
    return claims


def parse_role(value: Any, *, default: UserRole | None = None) -> UserRole | None:
    try:
        return UserRole(str(value).strip().lower())
    except ValueError:
        return default


def get_session_context(request: Request, db: Session = Depends(get_db)) -> SessionContext | None:
    """Resolve the session cookie; anything unusable reads as "no session"."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        return None

    session_row = resolve_session(db, token)
    if session_row is None:
        return None

    # Role and name come from the live row so demotions apply immediately.
    user = db.get(User, session_row.user_id)
    if user is None:
        return None

    request.state.actor = "user"
    request.state.actor_id = str(user.id)
    return SessionContext(
        user_id=user.id,
        role=user.role,
        name=user.name,
        email=session_row.user_email or user.email,
        session_id=session_row.id,
    )


def is_role_allowed(role: UserRole, allowed: Iterable[UserRole]) -> bool:
    return role in tuple(allowed)


def authorize(context: SessionContext | None, allowed: Iterable[UserRole]) -> SessionContext:
    if context is None:
        raise UnauthenticatedError()
    if not is_role_allowed(context.role, allowed):
        raise ForbiddenError()
    return context


def require_session(
    context: SessionContext | None = Depends(get_session_context),
) -> SessionContext:
    return authorize(context, ANY_ROLE)


require_session.allowed_roles = ANY_ROLE  # type: ignore[attr-defined]


def require_roles(*roles: UserRole) -> Callable[..., SessionContext]:
    if not roles:
        raise ValueError("At least one role is required")
    allowed = tuple(roles)

    def _dependency(
        context: SessionContext | None = Depends(get_session_context),
    ) -> SessionContext:
        return authorize(context, allowed)

    _dependency.allowed_roles = allowed  # type: ignore[attr-defined]
    return _dependency


def route_allowed_roles(route: Any) -> tuple[UserRole, ...] | None:
    """Roles guarding a matched route, or None when the route is public."""
    dependant = getattr(route, "dependant", None)
    if dependant is None:
        return None
    pending = list(dependant.dependencies)
    while pending:
        item = pending.pop()
        allowed = getattr(item.call, "allowed_roles", None)
        if allowed is not None:
            return tuple(allowed)
        pending.extend(item.dependencies)
    return None


def resolve_request_context(request: Request) -> SessionContext | None:
    """Resolve the session outside dependency injection, for exception handlers."""
    provider = request.app.dependency_overrides.get(get_db, get_db)
    db_iter = provider()
    db = next(db_iter)
    try:
        return get_session_context(request, db)
    finally:
        db_iter.close()
