"""Transactional email transports — Resend HTTP API and SMTP relay.

Senders never raise for provider failures: every send returns a
DeliveryResult so the caller decides which failures matter.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

import httpx
import structlog

from enthalpy.config import Settings
from enthalpy.pilot.errors import truncate_details
from enthalpy.schemas.pilot import DeliveryResult, OutboundEmail

logger = structlog.get_logger()


class EmailSender(ABC):
    """Sends one OutboundEmail through a concrete provider."""

    provider: str = "unknown"

    @abstractmethod
    async def send(self, email: OutboundEmail) -> DeliveryResult:
        """Attempt delivery once.

        Args:
            email: Fully built message

        Returns:
            DeliveryResult, ok=False with error detail on failure
        """

    async def close(self) -> None:
        """Release transport resources."""

    def _failure(
        self,
        error: str,
        status_code: Optional[int] = None,
        transient: bool = False,
    ) -> DeliveryResult:
        return DeliveryResult(
            ok=False,
            provider=self.provider,
            error=truncate_details(error),
            status_code=status_code,
            transient=transient,
        )


class ResendEmailSender(EmailSender):
    """Async client for the Resend `POST /emails` endpoint."""

    provider = "resend"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(self, email: OutboundEmail) -> dict:
        payload = {
            "from": email.sender,
            "to": email.to,
            "subject": email.subject,
            "text": email.text,
        }
        if email.html:
            payload["html"] = email.html
        if email.reply_to:
            payload["reply_to"] = email.reply_to
        return payload

    async def send(self, email: OutboundEmail) -> DeliveryResult:
        try:
            response = await self.client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=self._payload(email),
            )
        except httpx.TimeoutException as e:
            logger.warning("email_send_timeout", provider=self.provider, error=str(e))
            return self._failure(f"timeout: {e}" if str(e) else "timeout", transient=True)
        except httpx.HTTPError as e:
            logger.warning("email_send_transport_error", provider=self.provider, error=str(e))
            return self._failure(str(e) or type(e).__name__, transient=True)

        if not response.is_success:
            return self._failure(
                response.text,
                status_code=response.status_code,
                transient=response.status_code == 429 or response.status_code >= 500,
            )

        message_id = None
        try:
            message_id = response.json().get("id")
        except (ValueError, AttributeError):
            pass

        return DeliveryResult(
            ok=True,
            provider=self.provider,
            message_id=message_id,
            status_code=response.status_code,
        )

    async def close(self) -> None:
        await self.client.aclose()


class SmtpEmailSender(EmailSender):
    """SMTP relay sender; smtplib is synchronous, so it runs in a thread."""

    provider = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        starttls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def _build_message(self, email: OutboundEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = email.sender
        msg["To"] = ", ".join(email.to)
        msg["Subject"] = email.subject
        msg["Message-ID"] = make_msgid()
        if email.reply_to:
            msg["Reply-To"] = email.reply_to
        msg.set_content(email.text)
        if email.html:
            msg.add_alternative(email.html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.starttls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, email: OutboundEmail) -> DeliveryResult:
        try:
            msg = self._build_message(email)
            await asyncio.to_thread(self._deliver, msg)
        except smtplib.SMTPResponseException as e:
            error = e.smtp_error
            if isinstance(error, bytes):
                error = error.decode("utf-8", errors="replace")
            return self._failure(
                f"{e.smtp_code} {error}",
                status_code=e.smtp_code,
                transient=400 <= e.smtp_code < 500,
            )
        except smtplib.SMTPServerDisconnected as e:
            return self._failure(str(e) or "server disconnected", transient=True)
        except smtplib.SMTPException as e:
            return self._failure(str(e) or type(e).__name__)
        except OSError as e:
            # Connection refused, DNS failure, socket timeout
            return self._failure(str(e) or type(e).__name__, transient=True)
        except ValueError as e:
            # Header the email package refuses to serialize
            return self._failure(str(e))

        return DeliveryResult(ok=True, provider=self.provider, message_id=msg["Message-ID"])


def build_email_sender(settings: Settings) -> Optional[EmailSender]:
    """Create the configured transport.

    Returns None if the transport credential is missing; the pilot
    handler reports that as a configuration fault.
    """
    if settings.email_transport == "smtp":
        if not settings.smtp_host:
            logger.warning("email_sender_not_configured", transport="smtp")
            return None
        sender: EmailSender = SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            timeout=settings.email_timeout_seconds,
        )
    else:
        if not settings.resend_api_key:
            logger.warning("email_sender_not_configured", transport="resend")
            return None
        sender = ResendEmailSender(
            api_key=settings.resend_api_key,
            api_url=settings.resend_api_url,
            timeout=settings.email_timeout_seconds,
        )

    logger.info("email_sender_initialized", transport=settings.email_transport)
    return sender
