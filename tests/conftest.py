"""Test fixtures and configuration."""

import pytest
from unittest.mock import AsyncMock

from enthalpy.notifications.email import EmailSender
from enthalpy.pilot.service import PilotAccessService

from factories import make_settings, ok_result


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def mock_sender():
    """Email sender double; every send succeeds unless reconfigured."""
    sender = AsyncMock(spec=EmailSender)
    sender.provider = "fake"
    sender.send = AsyncMock(return_value=ok_result())
    return sender


@pytest.fixture
def service(settings, mock_sender):
    return PilotAccessService(settings, mock_sender)


@pytest.fixture
def valid_payload():
    return {
        "name": "Jane",
        "company": "Acme",
        "email": "jane@acme.com",
        "message": "test",
    }
