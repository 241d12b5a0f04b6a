from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cleanops.audit import audit_user_action
from cleanops.db import get_db
from cleanops.errors import ConflictError, InvalidRequestError, NotFoundError
from cleanops.models import User, UserRole
from cleanops.schemas import SuccessResponse, UserCreate, UserRead, UserUpdate
from cleanops.security import ADMIN_ONLY, STAFF_ROLES, SessionContext, hash_password, require_roles
from cleanops.services.bootstrap import SEED_ADMIN_USER_ID
from cleanops.services.sessions import revoke_user_sessions

router = APIRouter(tags=["users"])


@router.get("/api/users", response_model=list[UserRead])
def list_users(
    _context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> list[User]:
    return list(db.scalars(select(User).order_by(User.name.asc(), User.id.asc())).all())


@router.post("/api/users", response_model=UserRead)
def create_user(
    payload: UserCreate,
    request: Request,
    context: SessionContext = Depends(require_roles(*ADMIN_ONLY)),
    db: Session = Depends(get_db),
) -> User:
    existing = db.scalar(select(User).where(User.username == payload.username))
    if existing is not None:
        raise ConflictError("Username already exists")

    user = User(
        username=payload.username,
        password_hash=hash_password(payload.password),
        name=payload.name,
        role=payload.role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Username already exists")
    db.refresh(user)

    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="USER_CREATED",
        entity_type="user",
        entity_id=user.id,
        details={"username": user.username, "role": user.role.value},
    )
    return user


@router.put("/api/users/{user_id}", response_model=SuccessResponse)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    context: SessionContext = Depends(require_roles(*ADMIN_ONLY)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.id == SEED_ADMIN_USER_ID and payload.role is not None and payload.role != UserRole.ADMIN:
        raise InvalidRequestError("cannot change admin user role")

    role_changed = payload.role is not None and payload.role != user.role
    if payload.name is not None:
        user.name = payload.name
    if payload.role is not None:
        user.role = payload.role
    if payload.password:
        user.password_hash = hash_password(payload.password)

    revoked_sessions = 0
    if role_changed or payload.password:
        # An admin changing their own password keeps the session they are using.
        keep_session_id = context.session_id if user.id == context.user_id else None
        revoked_sessions = revoke_user_sessions(db, user.id, keep_session_id=keep_session_id)
    db.commit()

    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="USER_UPDATED",
        entity_type="user",
        entity_id=user.id,
        details={
            "name": user.name,
            "role": user.role.value,
            "password_changed": bool(payload.password),
            "revoked_sessions": revoked_sessions,
        },
    )
    return SuccessResponse(success=True)


@router.delete("/api/users/{user_id}", response_model=SuccessResponse)
def delete_user(
    user_id: int,
    request: Request,
    context: SessionContext = Depends(require_roles(*ADMIN_ONLY)),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    if user_id == SEED_ADMIN_USER_ID:
        raise InvalidRequestError("cannot delete admin user")

    user = db.get(User, user_id)
    if user is None:
        return SuccessResponse(success=True)

    deleted_username = user.username
    db.delete(user)
    db.commit()

    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="USER_DELETED",
        entity_type="user",
        entity_id=user_id,
        details={"username": deleted_username},
    )
    return SuccessResponse(success=True)
