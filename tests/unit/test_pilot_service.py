"""Tests for PilotAccessService — spam, config, notification and confirmation."""

import pytest
from unittest.mock import AsyncMock, patch

from enthalpy.pilot.errors import (
    DeliveryFailedError,
    PilotValidationError,
    ServiceNotConfiguredError,
)
from enthalpy.pilot.service import PilotAccessService
from enthalpy.schemas.pilot import DeliveryResult, PilotOutcome

from factories import failed_result, make_settings, ok_result


class TestSpamAndValidation:
    """Nothing is sent unless the request is clean and valid."""

    @pytest.mark.asyncio
    async def test_honeypot_is_silent_success(self, service, mock_sender):
        outcome = await service.submit({"website": "http://bot.example"})
        assert outcome.accepted
        assert outcome.spam
        mock_sender.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_honeypot_skips_validation(self, service, mock_sender, valid_payload):
        outcome = await service.submit({**valid_payload, "email": "junk", "website": "x"})
        assert outcome.accepted
        mock_sender.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_validation_error_sends_nothing(self, service, mock_sender, valid_payload):
        with pytest.raises(PilotValidationError) as exc_info:
            await service.submit({**valid_payload, "company": "  "})
        assert exc_info.value.reason == "Company is required"
        mock_sender.send.assert_not_called()


class TestConfiguration:
    """Missing settings fail before any network call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"resend_api_key": ""},
            {"pilot_to_email": ""},
            {"pilot_from_email": ""},
            {"email_transport": "smtp", "smtp_host": ""},
        ],
    )
    async def test_missing_setting(self, mock_sender, valid_payload, overrides):
        service = PilotAccessService(make_settings(**overrides), mock_sender)
        with pytest.raises(ServiceNotConfiguredError) as exc_info:
            await service.submit(valid_payload)
        assert exc_info.value.status_code == 500
        assert exc_info.value.reason == "Server not configured"
        mock_sender.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_sender(self, settings, valid_payload):
        service = PilotAccessService(settings, None)
        with pytest.raises(ServiceNotConfiguredError) as exc_info:
            await service.submit(valid_payload)
        assert exc_info.value.missing == ["email_transport"]

    @pytest.mark.asyncio
    async def test_validation_precedes_configuration(self, valid_payload):
        service = PilotAccessService(make_settings(resend_api_key=""), None)
        with pytest.raises(PilotValidationError):
            await service.submit({**valid_payload, "message": ""})


class TestDelivery:
    """Notification must succeed; confirmation is best-effort."""

    @pytest.mark.asyncio
    async def test_valid_request_sends_both_emails(self, service, mock_sender, valid_payload):
        outcome = await service.submit(valid_payload)

        assert outcome.accepted
        assert not outcome.spam
        assert outcome.confirmation_sent
        assert mock_sender.send.await_count == 2

        notification = mock_sender.send.await_args_list[0].args[0]
        assert notification.to == ["ops@enthalpy.test"]
        assert notification.reply_to == "jane@acme.com"
        assert notification.subject == "Pilot access — Acme"
        assert "Name: Jane" in notification.text
        assert "Company: Acme" in notification.text

        confirmation = mock_sender.send.await_args_list[1].args[0]
        assert confirmation.to == ["jane@acme.com"]
        assert confirmation.reply_to is None
        assert "Acme" in confirmation.text

    @pytest.mark.asyncio
    async def test_confirmation_failure_still_succeeds(self, service, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(side_effect=[ok_result(), failed_result("mailbox full")])

        outcome = await service.submit(valid_payload)

        assert outcome.accepted
        assert not outcome.confirmation_sent
        assert outcome.confirmation.error == "mailbox full"
        assert mock_sender.send.await_count == 2

    @pytest.mark.asyncio
    async def test_confirmation_exception_still_succeeds(self, service, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(side_effect=[ok_result(), RuntimeError("boom")])

        outcome = await service.submit(valid_payload)

        assert outcome.accepted
        assert outcome.confirmation.error == "boom"

    @pytest.mark.asyncio
    async def test_notification_failure_fails_and_skips_confirmation(
        self, service, mock_sender, valid_payload
    ):
        mock_sender.send = AsyncMock(return_value=failed_result("invalid api key"))

        with pytest.raises(DeliveryFailedError) as exc_info:
            await service.submit(valid_payload)

        assert exc_info.value.status_code == 502
        assert exc_info.value.to_payload() == {
            "error": "Email sending failed",
            "details": "invalid api key",
        }
        assert mock_sender.send.await_count == 1

    @pytest.mark.asyncio
    async def test_notification_exception_is_delivery_failure(
        self, service, mock_sender, valid_payload
    ):
        mock_sender.send = AsyncMock(side_effect=ConnectionError("refused"))
        with pytest.raises(DeliveryFailedError):
            await service.submit(valid_payload)

    @pytest.mark.asyncio
    async def test_provider_detail_truncated(self, service, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(return_value=failed_result("x" * 2000))
        with pytest.raises(DeliveryFailedError) as exc_info:
            await service.submit(valid_payload)
        assert len(exc_info.value.details) == 500

    @pytest.mark.asyncio
    async def test_confirmation_disabled(self, mock_sender, valid_payload):
        service = PilotAccessService(
            make_settings(pilot_send_confirmation=False), mock_sender
        )
        outcome = await service.submit(valid_payload)
        assert outcome.accepted
        assert outcome.confirmation is None
        assert mock_sender.send.await_count == 1


class TestNotificationRetry:
    """Bounded retry applies to transient notification failures only."""

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, service, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(return_value=failed_result(transient=True))
        with pytest.raises(DeliveryFailedError):
            await service.submit(valid_payload)
        assert mock_sender.send.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(side_effect=[
            failed_result("503", transient=True),
            ok_result("msg-2"),
            ok_result("msg-3"),
        ])
        service = PilotAccessService(
            make_settings(notification_max_attempts=3, notification_retry_delay_seconds=0.25),
            mock_sender,
        )

        with patch("enthalpy.pilot.service.asyncio.sleep", new=AsyncMock()) as sleep:
            outcome = await service.submit(valid_payload)

        assert outcome.accepted
        assert outcome.notification.attempts == 2
        assert outcome.notification.message_id == "msg-2"
        sleep.assert_awaited_once_with(0.25)
        assert mock_sender.send.await_count == 3

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(return_value=failed_result(transient=True))
        service = PilotAccessService(
            make_settings(notification_max_attempts=3, notification_retry_delay_seconds=0.1),
            mock_sender,
        )

        with patch("enthalpy.pilot.service.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(DeliveryFailedError):
                await service.submit(valid_payload)

        assert mock_sender.send.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_permanent_failure_not_retried(self, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(return_value=failed_result("422", transient=False))
        service = PilotAccessService(make_settings(notification_max_attempts=3), mock_sender)

        with pytest.raises(DeliveryFailedError):
            await service.submit(valid_payload)
        assert mock_sender.send.await_count == 1

    @pytest.mark.asyncio
    async def test_confirmation_never_retried(self, mock_sender, valid_payload):
        mock_sender.send = AsyncMock(side_effect=[
            ok_result(),
            failed_result(transient=True),
        ])
        service = PilotAccessService(make_settings(notification_max_attempts=3), mock_sender)

        outcome = await service.submit(valid_payload)
        assert outcome.accepted
        assert mock_sender.send.await_count == 2


class TestPilotOutcomeMerge:
    def test_notification_decides(self):
        assert PilotOutcome.merge(ok_result(), failed_result()).accepted
        assert not PilotOutcome.merge(failed_result(), None).accepted

    def test_confirmation_dropped_when_notification_failed(self):
        outcome = PilotOutcome.merge(failed_result(), ok_result())
        assert outcome.confirmation is None

    def test_confirmation_sent_flag(self):
        outcome = PilotOutcome.merge(
            ok_result(), DeliveryResult(ok=True, provider="fake")
        )
        assert outcome.confirmation_sent
