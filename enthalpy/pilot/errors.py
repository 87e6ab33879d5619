"""Pilot access error taxonomy.

Each error carries the HTTP status and the caller-facing reason the landing
page shows verbatim. The router turns them into JSON responses.
"""

from typing import Optional

DETAILS_MAX_LENGTH = 500


def truncate_details(details: Optional[str], limit: int = DETAILS_MAX_LENGTH) -> Optional[str]:
    """Trim provider error text before it is exposed or logged."""
    if details is None:
        return None
    return details[:limit]


class PilotAccessError(Exception):
    status_code: int = 500
    reason: str = "Unexpected server error"
    expose_details: bool = False  # details go to logs only unless set

    def __init__(self, reason: Optional[str] = None, details: Optional[str] = None):
        self.reason = reason or self.reason
        self.details = truncate_details(details)
        super().__init__(self.reason)

    def to_payload(self) -> dict:
        payload = {"error": self.reason}
        if self.expose_details and self.details:
            payload["details"] = self.details
        return payload


class PilotValidationError(PilotAccessError):
    """A required field is empty or the email is malformed."""

    status_code = 400
    reason = "Invalid request"

    def __init__(self, reason: str, field: str):
        self.field = field
        super().__init__(reason)


class MalformedRequestError(PilotAccessError):
    """Body is not a JSON object."""

    status_code = 400
    reason = "Bad request"


class ServiceNotConfiguredError(PilotAccessError):
    """Email credentials or addresses are missing from the environment."""

    status_code = 500
    reason = "Server not configured"

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__()


class DeliveryFailedError(PilotAccessError):
    """The operator notification could not be delivered."""

    status_code = 502
    reason = "Email sending failed"
    expose_details = True
