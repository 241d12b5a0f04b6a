from __future__ import annotations

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, aliased

from cleanops.errors import NotFoundError
from cleanops.models import Message, User
from cleanops.schemas import MessageCreate, MessageRead

_Sender = aliased(User, name="sender")
_Recipient = aliased(User, name="recipient")


def to_message_read(message: Message, sender: User | None, recipient: User | None) -> MessageRead:
    return MessageRead(
        id=message.id,
        from_user_id=message.from_user_id,
        from_name=sender.name if sender else None,
        from_role=sender.role if sender else None,
        to_user_id=message.to_user_id,
        to_name=recipient.name if recipient else None,
        to_role=recipient.role if recipient else None,
        message=message.body,
        read=message.read,
        created_at=message.created_at,
    )


def _message_query():
    return (
        select(Message, _Sender, _Recipient)
        .join(_Sender, _Sender.id == Message.from_user_id, isouter=True)
        .join(_Recipient, _Recipient.id == Message.to_user_id, isouter=True)
    )


def send_message(db: Session, payload: MessageCreate, *, from_user_id: int) -> MessageRead:
    recipient = db.get(User, payload.to_user_id)
    if recipient is None:
        raise NotFoundError("Recipient not found")

    message = Message(
        from_user_id=from_user_id,
        to_user_id=recipient.id,
        body=payload.message,
        read=False,
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    row = db.execute(_message_query().where(Message.id == message.id)).one()
    return to_message_read(*row)


def list_messages_for_user(db: Session, user_id: int) -> list[MessageRead]:
    stmt = (
        _message_query()
        .where(or_(Message.from_user_id == user_id, Message.to_user_id == user_id))
        .order_by(Message.created_at.desc(), Message.id.desc())
    )
    return [to_message_read(*row) for row in db.execute(stmt).all()]


def mark_message_read(db: Session, message_id: int, *, recipient_id: int) -> None:
    # Scoped to the recipient; there is no path that sets read back to false.
    result = db.execute(
        update(Message)
        .where(Message.id == message_id, Message.to_user_id == recipient_id)
        .values(read=True)
    )
    if not result.rowcount:
        db.rollback()
        raise NotFoundError("Message not found")
    db.commit()


def count_unread_messages(db: Session, user_id: int) -> int:
    stmt = select(func.count(Message.id)).where(
        Message.to_user_id == user_id,
        Message.read.is_(False),
    )
    return int(db.scalar(stmt) or 0)
