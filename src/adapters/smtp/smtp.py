"""
SMTP email sender adapter - Implements EmailSender protocol.

Sends plain-text mail through an SMTP relay. Port 465 uses implicit
TLS; any other port upgrades with STARTTLS when use_tls is set. Every
network call is bounded by the socket timeout.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage

from src.domain.exceptions import TransportError

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """Implements EmailSender protocol via smtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        sender_email: str,
        sender_name: str = "",
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver a plain-text message.

        Raises:
            TransportError: Connection, TLS, authentication or delivery failure
        """
        msg = EmailMessage()
        msg["From"] = f"{self.sender_name} <{self.sender_email}>" if self.sender_name else self.sender_email
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            with self._connect() as server:
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg, from_addr=self.sender_email, to_addrs=[to])
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s via %s:%d failed: %s", to, self.host, self.port, e)
            raise TransportError(f"Email delivery failed: {e}") from e

        logger.info("Email sent to %s: %s", to, subject)

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)

        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            try:
                server.starttls(context=context)
            except BaseException:
                server.close()
                raise
        return server
