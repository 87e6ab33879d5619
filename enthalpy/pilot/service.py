"""Pilot access service — validate a submission and relay it by email."""

import asyncio
from typing import Any, Optional

import structlog

from enthalpy.config import Settings
from enthalpy.notifications.email import EmailSender
from enthalpy.pilot.errors import (
    DeliveryFailedError,
    ServiceNotConfiguredError,
    truncate_details,
)
from enthalpy.pilot.templates import build_confirmation, build_notification
from enthalpy.pilot.validation import parse_pilot_body, validate_pilot_request
from enthalpy.schemas.pilot import (
    DeliveryResult,
    OutboundEmail,
    PilotOutcome,
    PilotRequest,
)

logger = structlog.get_logger()


class PilotAccessService:
    """Handles one pilot access submission per call.

    Built once per process with its settings and transport; holds no
    per-request state.
    """

    def __init__(self, settings: Settings, sender: Optional[EmailSender]):
        self.settings = settings
        self.sender = sender

    async def submit(self, raw_body: Any) -> PilotOutcome:
        """Process a pilot access form.

        Order: honeypot → field validation → configuration →
        notification → confirmation (best-effort).

        Args:
            raw_body: JSON text/bytes or decoded object from the request

        Returns:
            PilotOutcome with accepted=True (also for dropped spam)

        Raises:
            MalformedRequestError: body is not a JSON object
            PilotValidationError: required field empty or email malformed
            ServiceNotConfiguredError: credentials or addresses missing
            DeliveryFailedError: operator notification not delivered
        """
        form = parse_pilot_body(raw_body)

        if form.is_spam:
            logger.info("pilot_request_spam_dropped")
            return PilotOutcome(accepted=True, spam=True)

        request = validate_pilot_request(form)
        sender = self._require_sender()

        logger.info(
            "pilot_request_received",
            company=request.company,
            email_domain=request.email_domain,
        )

        notification = await self.send_notification(sender, request)
        if not notification.ok:
            logger.error(
                "pilot_notification_failed",
                provider=notification.provider,
                status_code=notification.status_code,
                attempts=notification.attempts,
                error=notification.error,
            )
            raise DeliveryFailedError(details=notification.error)

        logger.info(
            "pilot_notification_sent",
            company=request.company,
            message_id=notification.message_id,
            attempts=notification.attempts,
        )

        confirmation = None
        if self.settings.pilot_send_confirmation:
            confirmation = await self.send_confirmation(sender, request)

        return PilotOutcome.merge(notification, confirmation)

    def _require_sender(self) -> EmailSender:
        missing = self.settings.missing_email_settings()
        if self.sender is None and not missing:
            missing = ["email_transport"]
        if missing:
            logger.error("pilot_service_not_configured", missing=missing)
            raise ServiceNotConfiguredError(missing)
        return self.sender

    async def _send(self, sender: EmailSender, email: OutboundEmail) -> DeliveryResult:
        try:
            return await sender.send(email)
        except Exception as e:
            logger.exception("email_send_crashed", provider=sender.provider)
            return DeliveryResult(
                ok=False,
                provider=sender.provider,
                error=truncate_details(str(e) or type(e).__name__),
            )

    async def send_notification(
        self, sender: EmailSender, request: PilotRequest
    ) -> DeliveryResult:
        """Send the operator notification, retrying transient failures.

        Attempts are capped by notification_max_attempts; the delay doubles
        after each failed attempt.
        """
        email = build_notification(request, self.settings)
        max_attempts = max(1, self.settings.notification_max_attempts)
        delay = self.settings.notification_retry_delay_seconds

        attempt = 1
        while True:
            result = await self._send(sender, email)
            result = result.model_copy(update={"attempts": attempt})
            if result.ok or not result.transient or attempt >= max_attempts:
                return result

            logger.warning(
                "pilot_notification_retry",
                attempt=attempt,
                delay=delay,
                error=result.error,
            )
            await asyncio.sleep(delay)
            delay *= 2
            attempt += 1

    async def send_confirmation(
        self, sender: EmailSender, request: PilotRequest
    ) -> DeliveryResult:
        """Send the requester confirmation once. Failure is only logged."""
        result = await self._send(sender, build_confirmation(request, self.settings))
        if result.ok:
            logger.info("pilot_confirmation_sent", message_id=result.message_id)
        else:
            logger.warning(
                "pilot_confirmation_failed",
                provider=result.provider,
                status_code=result.status_code,
                error=result.error,
            )
        return result
