import uuid

from fastapi import APIRouter, Depends
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.database import get_db, utcnow
from propdesk.core.deps import get_current_user
from propdesk.core.errors import NotFoundError, UnauthorizedError, ValidationError
from propdesk.models.message import Message, conversation_id_for
from propdesk.models.user import User
from propdesk.schemas.message import (
    ConversationSummary,
    MessageCreate,
    MessageResponse,
    UnreadCount,
)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/conversations", response_model=list[ConversationSummary])
async def list_conversations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """One entry per conversation: latest message and how many are unread."""
    result = await db.execute(
        select(Message)
        .where(or_(Message.sender_id == user.id, Message.recipient_id == user.id))
        .order_by(Message.created_at.desc())
    )
    latest: dict[str, Message] = {}
    unread: dict[str, int] = {}
    for msg in result.scalars().all():
        latest.setdefault(msg.conversation_id, msg)
        if msg.recipient_id == user.id and not msg.is_read:
            unread[msg.conversation_id] = unread.get(msg.conversation_id, 0) + 1

    other_ids = {
        m.recipient_id if m.sender_id == user.id else m.sender_id for m in latest.values()
    }
    names = {}
    if other_ids:
        rows = await db.execute(select(User.id, User.full_name).where(User.id.in_(other_ids)))
        names = {uid: name for uid, name in rows.all()}

    summaries = []
    for cid, msg in latest.items():
        other = msg.recipient_id if msg.sender_id == user.id else msg.sender_id
        summaries.append(ConversationSummary(
            conversation_id=cid,
            other_user_id=other,
            other_user_name=names.get(other, "Unknown user"),
            last_message=MessageResponse.model_validate(msg),
            unread_count=unread.get(cid, 0),
        ))
    return summaries


@router.get("/conversations/{conversation_id}", response_model=list[MessageResponse])
async def get_conversation(
    conversation_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if str(user.id) not in conversation_id.split("_"):
        raise UnauthorizedError("Not authorized")

    result = await db.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc())
    )
    messages = result.scalars().all()

    now = utcnow()
    for msg in messages:
        if msg.recipient_id == user.id and not msg.is_read:
            msg.is_read = True
            msg.read_at = now
    await db.flush()
    return messages


@router.post("/", response_model=MessageResponse, status_code=201)
async def send_message(
    payload: MessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if payload.recipient_id == user.id:
        raise ValidationError("Cannot send a message to yourself")
    if await db.get(User, payload.recipient_id) is None:
        raise NotFoundError("Recipient not found")
    if (payload.related_type is None) != (payload.related_id is None):
        raise ValidationError("related_type and related_id must be given together")

    msg = Message(
        sender_id=user.id,
        recipient_id=payload.recipient_id,
        conversation_id=conversation_id_for(user.id, payload.recipient_id),
        content=payload.content,
        related_type=payload.related_type.value if payload.related_type else None,
        related_id=payload.related_id,
        is_read=False,
        created_at=utcnow(),
    )
    db.add(msg)
    await db.flush()
    return msg


@router.patch("/{message_id}/read", response_model=MessageResponse)
async def mark_read(
    message_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    msg = await db.get(Message, message_id)
    if msg is None:
        raise NotFoundError("Message not found")
    if msg.recipient_id != user.id:
        raise UnauthorizedError("Not authorized")

    if not msg.is_read:
        msg.is_read = True
        msg.read_at = utcnow()
        await db.flush()
    return msg


@router.get("/unread/count", response_model=UnreadCount)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await db.scalar(
        select(func.count(Message.id)).where(
            Message.recipient_id == user.id,
            Message.is_read == False,  # noqa: E712
        )
    )
    return UnreadCount(count=count or 0)
