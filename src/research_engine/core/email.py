"""
Email Transport using Resend

Delivers one rendered message per call. Retrying and queueing belong to
the notification dispatcher; this module only knows how to hand a single
message to Resend and report whether it went out.

Every message is sent from the no-reply address with auto-response
suppression headers, and carries a no-reply note in both bodies.
"""

import asyncio
import logging
from dataclasses import dataclass, field

import resend

from research_engine.core.config import Settings

logger = logging.getLogger(__name__)

NO_REPLY_NOTE = "NOTE: This email was sent from a no-reply address. Please do not reply to this email."

AUTO_REPLY_HEADERS = {
    "Auto-Submitted": "auto-generated",
    "X-Auto-Response-Suppress": "All",
}


class MailDeliveryError(Exception):
    """Raised when the mail provider rejects or fails a send."""


@dataclass(frozen=True)
class OutgoingEmail:
    """A fully rendered message addressed to one recipient."""

    to: str
    subject: str
    text: str
    html: str
    tags: dict[str, str] = field(default_factory=dict)


def with_no_reply_note(message: OutgoingEmail) -> tuple[str, str]:
    """Return (text, html) with the no-reply note appended."""
    text = f"{message.text}\n\n{NO_REPLY_NOTE}"
    html = (
        f'{message.html}\n<p style="color: #64748b; font-size: 12px; margin-top: 20px;">'
        f"{NO_REPLY_NOTE}</p>"
    )
    return text, html


class ResendMailTransport:
    """Mail transport backed by the Resend API."""

    def __init__(self, api_key: str | None, sender: str, reply_to: str):
        self._api_key = api_key
        self._sender = sender
        self._reply_to = reply_to

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendMailTransport":
        return cls(
            api_key=settings.resend_api_key,
            sender=settings.email_from,
            reply_to=settings.email_reply_to,
        )

    async def send(self, message: OutgoingEmail) -> None:
        """
        Send one message.

        Without an API key the message is logged instead of sent.

        Args:
            message: Rendered message

        Raises:
            MailDeliveryError: If Resend fails to accept the message
        """
        if not self._api_key:
            logger.warning("RESEND_API_KEY not set - logging email instead of sending")
            logger.info(f"EMAIL TO: {message.to} | SUBJECT: {message.subject}")
            return

        text, html = with_no_reply_note(message)
        params: resend.Emails.SendParams = {
            "from": self._sender,
            "to": [message.to],
            "reply_to": self._reply_to,
            "subject": message.subject,
            "text": text,
            "html": html,
            "headers": AUTO_REPLY_HEADERS,
        }

        resend.api_key = self._api_key
        try:
            # Resend's client is synchronous
            email = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            raise MailDeliveryError(f"Failed to send email to {message.to}: {e}") from e

        logger.info(f"Email sent successfully to {message.to}, id: {email['id']}")
