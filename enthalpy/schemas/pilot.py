"""Pilot access schemas — inbound form, outbound emails, delivery results."""

from typing import Any, Optional

from pydantic import BaseModel, field_validator


class PilotRequestIn(BaseModel):
    """Raw pilot access form as posted by the landing page.

    Every field is coerced to a trimmed string; absent or null fields
    become "". No business rules are applied here.
    """

    name: str = ""
    company: str = ""
    email: str = ""
    message: str = ""
    website: str = ""  # honeypot, hidden from humans

    model_config = {"extra": "ignore"}

    @field_validator("name", "company", "email", "message", "website", mode="before")
    @classmethod
    def _coerce_and_trim(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @property
    def is_spam(self) -> bool:
        return bool(self.website)


class PilotRequest(BaseModel):
    """Validated pilot access request, ready to be relayed by email."""

    name: str
    company: str
    email: str
    message: str

    @property
    def display_name(self) -> str:
        return self.name or "(not provided)"

    @property
    def email_domain(self) -> str:
        return self.email.rsplit("@", 1)[-1]


class OutboundEmail(BaseModel):
    """A single transactional email handed to an EmailSender."""

    sender: str
    to: list[str]
    subject: str
    text: str
    html: Optional[str] = None
    reply_to: Optional[str] = None

    @field_validator("sender", "subject", "reply_to", mode="before")
    @classmethod
    def _single_line_header(cls, value: Any) -> Any:
        # Header values may not contain CR or LF
        if isinstance(value, str):
            return " ".join(value.split())
        return value


class DeliveryResult(BaseModel):
    """Outcome of one send through a transport."""

    ok: bool
    provider: str
    message_id: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    transient: bool = False  # worth retrying (timeout, 429, 5xx)
    attempts: int = 1


class PilotOutcome(BaseModel):
    """Merged result of a pilot access submission.

    Accepted iff the notification was delivered; the confirmation result
    is kept for diagnostics only.
    """

    accepted: bool
    spam: bool = False
    notification: Optional[DeliveryResult] = None
    confirmation: Optional[DeliveryResult] = None

    @classmethod
    def merge(
        cls,
        notification: DeliveryResult,
        confirmation: Optional[DeliveryResult],
    ) -> "PilotOutcome":
        return cls(
            accepted=notification.ok,
            notification=notification,
            confirmation=confirmation if notification.ok else None,
        )

    @property
    def confirmation_sent(self) -> bool:
        return bool(self.confirmation and self.confirmation.ok)
