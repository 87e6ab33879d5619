"""Parsing and business validation of pilot access submissions."""

import json
import re
from typing import Any

from enthalpy.pilot.errors import MalformedRequestError, PilotValidationError
from enthalpy.schemas.pilot import PilotRequest, PilotRequestIn

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def parse_pilot_body(raw: Any) -> PilotRequestIn:
    """Turn a raw request body into a PilotRequestIn.

    Args:
        raw: bytes/str JSON text, or an already decoded object

    Returns:
        Shape-checked form with trimmed string fields

    Raises:
        MalformedRequestError: body is not a JSON object
    """
    if isinstance(raw, (bytes, bytearray, str)):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, bad UTF-8, oversized ints, deep nesting
            raise MalformedRequestError(details=str(e)) from e

    if not isinstance(raw, dict):
        raise MalformedRequestError(details="body must be a JSON object")

    return PilotRequestIn.model_validate(raw)


def validate_pilot_request(form: PilotRequestIn) -> PilotRequest:
    """Apply the required-field rules in order: company, email, message.

    The honeypot is not checked here; callers short-circuit spam first.
    """
    if not form.company:
        raise PilotValidationError("Company is required", field="company")
    if not form.email:
        raise PilotValidationError("Email is required", field="email")
    if not is_email(form.email):
        raise PilotValidationError("Invalid email", field="email")
    if not form.message:
        raise PilotValidationError("Message is required", field="message")

    return PilotRequest(
        name=form.name,
        company=form.company,
        email=form.email,
        message=form.message,
    )
