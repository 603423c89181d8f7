"""Inbox routes: persisted direct messages between two users."""
from datetime import datetime, timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from . import schemas
from .auth import get_current_user_id
from .config import MESSAGE_EDIT_WINDOW_MINUTES
from .database import get_db
from .logging_config import configure_logging
from .models import Message, User

router = APIRouter(prefix="/users/{user_id}/messages", tags=["messages"])
logger = configure_logging()


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=List[schemas.MessageOut])
def get_conversation(
    user_id: int,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """Both directions of the conversation, oldest first; incoming ones become read."""
    _get_user(db, user_id)
    messages = (
        db.query(Message)
        .filter(
            or_(
                and_(Message.sender_id == current_user_id, Message.recipient_id == user_id),
                and_(Message.sender_id == user_id, Message.recipient_id == current_user_id),
            )
        )
        .order_by(Message.created_at, Message.id)
        .all()
    )

    unread = [m for m in messages if m.sender_id == user_id and m.recipient_id == current_user_id and not m.read]
    for msg in unread:
        msg.read = True
    if unread:
        db.commit()
    return messages


@router.post("", response_model=schemas.MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(
    user_id: int,
    payload: schemas.MessageContent,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    recipient = _get_user(db, user_id)
    message = Message(sender_id=current_user_id, recipient_id=recipient.id, content=payload.content)
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(
        "MESSAGE_SENT sender_id=%s recipient_id=%s message_id=%s",
        current_user_id,
        recipient.id,
        message.id,
    )
    return message


@router.get("/unread/count", response_model=schemas.UnreadCount)
def get_unread_count(
    user_id: int,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    count = (
        db.query(Message)
        .filter(Message.sender_id == user_id, Message.recipient_id == current_user_id, Message.read.is_(False))
        .count()
    )
    return schemas.UnreadCount(count=count)


@router.put("/{message_id}/read", response_model=schemas.MessageOut)
def mark_message_as_read(
    user_id: int,
    message_id: int,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    message = (
        db.query(Message)
        .filter(Message.id == message_id, Message.sender_id == user_id, Message.recipient_id == current_user_id)
        .first()
    )
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    message.read = True
    db.commit()
    db.refresh(message)
    return message


@router.put("/{message_id}", response_model=schemas.MessageOut)
def update_message(
    user_id: int,
    message_id: int,
    payload: schemas.MessageContent,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    message = (
        db.query(Message)
        .filter(Message.id == message_id, Message.sender_id == current_user_id, Message.recipient_id == user_id)
        .first()
    )
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if datetime.utcnow() - message.created_at > timedelta(minutes=MESSAGE_EDIT_WINDOW_MINUTES):
        logger.info("MESSAGE_EDIT_REFUSED message_id=%s reason=window_elapsed", message.id)
        raise HTTPException(
            status_code=403,
            detail=f"Messages can no longer be edited after {MESSAGE_EDIT_WINDOW_MINUTES} minutes",
        )

    message.content = payload.content
    message.edited = True
    db.commit()
    db.refresh(message)
    logger.info("MESSAGE_EDITED message_id=%s sender_id=%s", message.id, current_user_id)
    return message


@router.delete("/{message_id}")
def delete_message(
    user_id: int,
    message_id: int,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    message = (
        db.query(Message)
        .filter(
            Message.id == message_id,
            or_(Message.sender_id == current_user_id, Message.recipient_id == current_user_id),
        )
        .first()
    )
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.sender_id != current_user_id:
        raise HTTPException(status_code=403, detail="Only the sender can delete this message")

    db.delete(message)
    db.commit()
    logger.info("MESSAGE_DELETED message_id=%s sender_id=%s", message_id, current_user_id)
    return {"message": "Message deleted"}
