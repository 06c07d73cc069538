"""SMTP mail transport built on aiosmtplib."""

from __future__ import annotations

import mimetypes
import sys
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from pathlib import Path
from typing import Mapping

import aiosmtplib

from conduit.errors import TransportError
from conduit.ports import MailMessage


class SmtpMailTransport:
    """Sends ``MailMessage`` objects through an SMTP server."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        secure: bool = False,
        username: str | None = None,
        password: str | None = None,
        from_name: str = "AI Agent",
        from_email: str | None = None,
        timeout: float = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.username = username
        self.password = password
        self.from_name = from_name
        self.from_email = from_email or username or ""
        self.timeout = timeout

    @classmethod
    def from_credentials(cls, credentials: Mapping[str, str]) -> "SmtpMailTransport":
        """Build a transport from ``smtp-*`` credential keys.

        Raises:
            TransportError: If host or user is missing.
        """
        host = credentials.get("smtp-host")
        user = credentials.get("smtp-user")
        if not host or not user:
            raise TransportError("SMTP not configured. Set smtp-host and smtp-user credentials.")

        try:
            port = int(credentials.get("smtp-port") or 587)
        except ValueError:
            port = 587

        return cls(
            host=host,
            port=port,
            secure=credentials.get("smtp-secure") == "true",
            username=user,
            password=credentials.get("smtp-pass"),
            from_name=credentials.get("smtp-from-name") or "AI Agent",
            from_email=credentials.get("smtp-from-email") or user,
        )

    def build(self, message: MailMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = formataddr((self.from_name, self.from_email))
        email["To"] = message.to
        if message.cc:
            email["Cc"] = message.cc
        if message.bcc:
            email["Bcc"] = message.bcc
        email["Subject"] = message.subject
        email["Message-ID"] = make_msgid()
        email.set_content(message.html, subtype="html")

        for attachment in message.attachments:
            path = Path(attachment.path)
            mime_type, _ = mimetypes.guess_type(attachment.filename)
            maintype, subtype = (mime_type or "application/octet-stream").split("/", 1)
            email.add_attachment(
                path.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                filename=attachment.filename,
            )
        return email

    async def send(self, message: MailMessage) -> str:
        try:
            email = self.build(message)
        except OSError as e:
            raise TransportError(f"Cannot read attachment: {e}") from e

        sys.stderr.write(f"[MAIL] Sending to {message.to} via {self.host}:{self.port}\n")
        sys.stderr.flush()

        try:
            await aiosmtplib.send(
                email,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.secure,
                start_tls=None if self.secure else (self.port == 587),
                timeout=self.timeout,
            )
        except aiosmtplib.SMTPException as e:
            raise TransportError(f"SMTP send failed: {e}") from e
        except OSError as e:
            raise TransportError(f"SMTP connection failed: {e}") from e

        return email["Message-ID"]
