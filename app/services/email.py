"""Outbound notification senders.

Real mail transport is not wired up; the default sender writes the message to the
application log, the same way reset links were surfaced during development.
"""

import logging
from dataclasses import dataclass

from app.config import get_settings
from app.errors import DeliveryError

logger = logging.getLogger("natours")


@dataclass(frozen=True)
class EmailMessage:
    recipient: str
    subject: str
    body: str


class EmailSender:
    """Interface for anything that can deliver an ``EmailMessage``."""

    def send(self, message: EmailMessage) -> None:
        """Deliver the message. Raises DeliveryError on failure."""
        raise NotImplementedError


class LogEmailSender(EmailSender):
    """Writes outgoing mail to the server log."""

    def __init__(self, sender: str | None = None) -> None:
        self.sender = sender or get_settings().MAIL_FROM

    def send(self, message: EmailMessage) -> None:
        if not message.recipient:
            raise DeliveryError("Message has no recipient")
        logger.info(
            "EMAIL from=%s to=%s subject=%r\n%s",
            self.sender,
            message.recipient,
            message.subject,
            message.body,
        )


_email_sender: EmailSender | None = None


def get_email_sender() -> EmailSender:
    """Get singleton email sender instance. Used as a FastAPI dependency so tests can override it."""
    global _email_sender
    if _email_sender is None:
        _email_sender = LogEmailSender()
    return _email_sender
