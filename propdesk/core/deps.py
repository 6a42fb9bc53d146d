from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.config import settings
from propdesk.core.database import get_db
from propdesk.core.security import decode_token
from propdesk.models.user import User
from propdesk.services.email import EmailConfig, EmailSender
from propdesk.services.receipts import ReceiptGenerator


def _token_from_request(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth.split(" ", 1)[1]
    return request.cookies.get("access_token")


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller from the bearer header or the access_token cookie."""
    token = _token_from_request(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user_id = decode_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def get_email_sender() -> EmailSender:
    return EmailSender(EmailConfig.from_settings(settings))


def get_receipt_generator() -> ReceiptGenerator:
    return ReceiptGenerator(settings.receipt_dir, settings.app_name)
