from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cleanops.db import get_db
from cleanops.schemas import MessageCreate, MessageRead, SuccessResponse, UnreadCountResponse
from cleanops.security import SessionContext, require_session
from cleanops.services.messaging import (
    count_unread_messages,
    list_messages_for_user,
    mark_message_read,
    send_message,
)

router = APIRouter(tags=["messages"])


@router.post("/api/messages", response_model=MessageRead)
def post_message(
    payload: MessageCreate,
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> MessageRead:
    return send_message(db, payload, from_user_id=context.user_id)


@router.get("/api/messages", response_model=list[MessageRead])
def get_messages(
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> list[MessageRead]:
    return list_messages_for_user(db, context.user_id)


@router.get("/api/messages/unread/count", response_model=UnreadCountResponse)
def get_unread_count(
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=count_unread_messages(db, context.user_id))


@router.put("/api/messages/{message_id}/read", response_model=SuccessResponse)
def put_message_read(
    message_id: int,
    context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    mark_message_read(db, message_id, recipient_id=context.user_id)
    return SuccessResponse(success=True)
