"""
Mail transports.

The dispatch engine only knows the MailTransport interface:

    transport.send(to, subject, html)   # raises on failure

SmtpTransport delivers through aiosmtplib. Dispatch cycles run in worker
threads without an event loop, so each send runs its own short-lived loop.
LoggingTransport is what you get when SMTP is not configured: mails are
logged and count as sent, which keeps local setups usable.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from email.message import EmailMessage

import aiosmtplib

logger = logging.getLogger(__name__)


class MailTransport(ABC):

    @abstractmethod
    def send(self, to: list[str], subject: str, html: str) -> None:
        """Deliver one message to all recipients. Raises on any failure."""
        ...


class SmtpTransport(MailTransport):

    def __init__(
        self,
        hostname: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "system@company.com",
        start_tls: bool = True,
        timeout: float = 10.0,
    ):
        self._hostname = hostname
        self._port = port
        self._username = username or None
        self._password = password or None
        self._sender = sender
        self._start_tls = start_tls
        self._timeout = timeout

    def send(self, to: list[str], subject: str, html: str) -> None:
        if not to:
            raise ValueError("Missing recipients")
        message = self.build_message(to, subject, html)
        asyncio.run(
            aiosmtplib.send(
                message,
                hostname=self._hostname,
                port=self._port,
                username=self._username,
                password=self._password,
                start_tls=self._start_tls,
                timeout=self._timeout,
            )
        )
        logger.info(f"SMTP delivered '{subject}' to {len(to)} recipient(s)")

    def build_message(self, to: list[str], subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = ", ".join(to)
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")
        return message


class LoggingTransport(MailTransport):

    def send(self, to: list[str], subject: str, html: str) -> None:
        if not to:
            raise ValueError("Missing recipients")
        logger.warning(f"SMTP not configured, mail not delivered: '{subject}' → {to}")


def build_transport(settings) -> MailTransport:
    if not settings.SMTP_HOST:
        return LoggingTransport()
    return SmtpTransport(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        sender=settings.MAIL_FROM,
        start_tls=settings.SMTP_START_TLS,
        timeout=settings.SMTP_TIMEOUT,
    )
