"""
Transactional email client.

Posts to a Brevo-compatible HTTP mail API.  Configuration is passed in
explicitly so callers (request handlers, Celery tasks, tests) decide where it
comes from.  Unlike the fire-and-forget chat notifications, a failed send is
reported to the caller as NotificationError.
"""

import base64
import logging
from dataclasses import dataclass
from pathlib import Path

import requests

from propdesk.core.config import Settings

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when an outbound notification could not be delivered."""


@dataclass(frozen=True)
class EmailConfig:
    api_url: str
    api_key: str
    sender_email: str
    sender_name: str
    enabled: bool = True
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailConfig":
        return cls(
            api_url=settings.mail_api_url,
            api_key=settings.mail_api_key,
            sender_email=settings.mail_sender_email,
            sender_name=settings.mail_sender_name,
            enabled=settings.mail_enabled,
        )


def _attachment(path: Path) -> dict:
    return {
        "name": path.name,
        "content": base64.b64encode(path.read_bytes()).decode("ascii"),
    }


class EmailSender:
    def __init__(self, config: EmailConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
        attachments: list[Path] | None = None,
    ) -> str | None:
        """
        Send one email and return the provider's message id.

        Returns None without sending when mail is disabled.  Raises
        NotificationError on a transport failure or a non-2xx response.
        """
        if not self.config.enabled:
            logger.info("Mail disabled; not sending %r to %s", subject, to)
            return None
        if not to:
            raise NotificationError("Recipient address is required")

        payload: dict = {
            "sender": {"name": self.config.sender_name, "email": self.config.sender_email},
            "to": [{"email": to}],
            "subject": subject,
            "textContent": text,
        }
        if html:
            payload["htmlContent"] = html
        if attachments:
            payload["attachment"] = [_attachment(Path(p)) for p in attachments]

        try:
            resp = self.session.post(
                self.config.api_url,
                headers={
                    "api-key": self.config.api_key,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                json=payload,
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Mail API unreachable (to=%s): %s", to, exc)
            raise NotificationError("Failed to send email") from exc

        if resp.status_code >= 300:
            logger.error(
                "Mail API returned %d for %s: %s", resp.status_code, to, resp.text[:200]
            )
            raise NotificationError("Failed to send email")

        message_id = resp.json().get("messageId", "")
        logger.info("Email sent to %s: %s", to, message_id)
        return message_id
