"""
Outgoing mail.

'SmtpMailer' sends plain-text mail through an SMTP relay. 'smtplib' blocks, so
each delivery runs in a worker thread.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

from loguru import logger

from chat_relay.errors import UpstreamError


class Mailer(ABC):
    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        pass


class SmtpMailer(Mailer):
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password

    def _send_blocking(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.username:
                smtp.starttls()
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        try:
            await asyncio.to_thread(self._send_blocking, message)
        except (smtplib.SMTPException, OSError) as e:
            raise UpstreamError(f"Could not send mail to {to}: {e}") from e
        logger.info(f"Sent {subject!r} to {to}")
