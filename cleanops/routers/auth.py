from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cleanops.audit import client_ip, log_audit, user_agent
from cleanops.db import get_db
from cleanops.errors import ApiError, ConflictError, InvalidCredentialsError, UnauthenticatedError
from cleanops.models import AuditActorType, User, UserRole
from cleanops.schemas import (
    IdentitySessionRequest,
    LoginRequest,
    LoginResponse,
    SessionRead,
    SessionUserRead,
    SuccessResponse,
)
from cleanops.security import (
    UNUSABLE_PASSWORD_HASH,
    SessionContext,
    decode_identity_assertion,
    ensure_login_attempt_allowed,
    parse_role,
    register_login_failure,
    register_login_success,
    require_session,
    verify_password,
)
from cleanops.services.sessions import create_session, revoke_session
from cleanops.settings import get_settings

router = APIRouter(tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


@router.post("/api/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> LoginResponse:
    username = payload.username
    ip = client_ip(request)
    request.state.actor = "system"
    request.state.actor_id = "system"

    if ip:
        try:
            ensure_login_attempt_allowed(ip)
        except ApiError:
            log_audit(
                db,
                actor_type=AuditActorType.SYSTEM,
                actor_id=username,
                action="LOGIN_FAIL",
                success=False,
                request=request,
                details={"reason": "TOO_MANY_ATTEMPTS"},
            )
            raise

    user = db.scalar(select(User).where(User.username == username))
    # Same error whether the user is missing or the password is wrong.
    if user is None or not verify_password(payload.password, user.password_hash):
        if ip:
            register_login_failure(ip)
        log_audit(
            db,
            actor_type=AuditActorType.SYSTEM,
            actor_id=username,
            action="LOGIN_FAIL",
            success=False,
            request=request,
            details={"reason": "INVALID_CREDENTIALS"},
        )
        raise InvalidCredentialsError()

    if ip:
        register_login_success(ip)

    token, session_row = create_session(db, user=user, ip=ip, user_agent=user_agent(request))
    _set_session_cookie(response, token)
    request.state.actor = "user"
    request.state.actor_id = str(user.id)

    log_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(user.id),
        action="LOGIN_SUCCESS",
        success=True,
        request=request,
        entity_type="session",
        entity_id=str(session_row.id),
        details={"username": user.username, "role": user.role.value},
    )
    return LoginResponse(success=True, user=SessionUserRead.model_validate(user))


def _find_or_mirror_identity_user(db: Session, claims: dict) -> User:
    subject = str(claims["sub"]).strip()
    email = str(claims.get("email") or "").strip().lower() or None

    user = None
    if email:
        user = db.scalar(select(User).where(User.email == email))
    if user is None:
        # Only accounts mirrored from earlier sign-ins; password accounts are never matched by username.
        user = db.scalar(
            select(User).where(
                User.username == (email or subject),
                User.password_hash == UNUSABLE_PASSWORD_HASH,
            )
        )
    if user is not None:
        return user

    user = User(
        username=email or subject,
        password_hash=UNUSABLE_PASSWORD_HASH,
        name=str(claims.get("name") or email or subject).strip(),
        role=parse_role(claims.get("role"), default=UserRole.OPERATOR),
        email=email,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A user with this identity already exists")
    db.refresh(user)
    return user


@router.post("/api/set-session", response_model=SuccessResponse)
def set_identity_session(
    payload: IdentitySessionRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    claims = decode_identity_assertion(payload.id_token)
    user = _find_or_mirror_identity_user(db, claims)
    email = str(claims.get("email") or "").strip().lower() or user.email

    token, session_row = create_session(
        db,
        user=user,
        email=email,
        ip=client_ip(request),
        user_agent=user_agent(request),
    )
    _set_session_cookie(response, token)

    log_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(user.id),
        action="IDENTITY_SIGN_IN",
        success=True,
        request=request,
        entity_type="session",
        entity_id=str(session_row.id),
        details={"subject": str(claims["sub"]), "email": email},
    )
    return SuccessResponse(success=True)


@router.post("/api/logout", response_model=SuccessResponse)
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    cookie_name = get_settings().session_cookie_name
    token = request.cookies.get(cookie_name)
    if token:
        revoked = revoke_session(db, token)
        if revoked is not None:
            log_audit(
                db,
                actor_type=AuditActorType.USER,
                actor_id=str(revoked.user_id),
                action="LOGOUT",
                success=True,
                request=request,
                entity_type="session",
                entity_id=str(revoked.id),
            )
    response.delete_cookie(cookie_name)
    return SuccessResponse(success=True)


@router.get("/api/session", response_model=SessionRead)
def current_session(context: SessionContext = Depends(require_session)) -> SessionRead:
    return SessionRead(
        userId=context.user_id,
        userName=context.name,
        userRole=context.role,
        userEmail=context.email,
    )


@router.get("/api/me", response_model=SessionUserRead)
def me(
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> SessionUserRead:
    user = db.get(User, context.user_id)
    if user is None:
        raise UnauthenticatedError()
    return SessionUserRead.model_validate(user)
