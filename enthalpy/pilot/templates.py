"""Email bodies for the operator notification and requester confirmation."""

from html import escape

from enthalpy.config import Settings
from enthalpy.schemas.pilot import OutboundEmail, PilotRequest

NOTIFICATION_SUBJECT = "Pilot access — {company}"

NOTIFICATION_TEXT = """New pilot access request

Name: {name}
Company: {company}
Email: {email}

Message:
{message}
"""

NOTIFICATION_HTML = """<div style="font-family:Arial,sans-serif;line-height:1.5">
  <h2>New pilot access request</h2>
  <p><b>Name:</b> {name}</p>
  <p><b>Company:</b> {company}</p>
  <p><b>Email:</b> {email}</p>
  <p><b>Message:</b><br/>{message}</p>
  <hr/>
  <p style="color:#64748b;font-size:12px">{brand} — {site_url}</p>
</div>"""

CONFIRMATION_SUBJECT = "{brand} — Request received"

CONFIRMATION_TEXT = """Hello{greeting_name},

Thanks — we received your pilot access request for {company}.
We'll get back to you shortly.

{brand}
{contact_email} · {site_url}
"""

CONFIRMATION_HTML = """<div style="font-family:Arial,sans-serif;line-height:1.5">
  <p>Hello{greeting_name},</p>
  <p>Thanks — we received your pilot access request for <b>{company}</b>.</p>
  <p>We'll get back to you shortly.</p>
  <p style="color:#64748b;font-size:12px;margin-top:14px">
    {brand}<br/>{contact_email} · {site_url}
  </p>
</div>"""


def _html_multiline(value: str) -> str:
    return escape(value).replace("\n", "<br/>")


def build_notification(request: PilotRequest, settings: Settings) -> OutboundEmail:
    """Operator notification; replies go straight to the requester."""
    return OutboundEmail(
        sender=settings.pilot_from_email,
        to=[settings.pilot_to_email],
        reply_to=request.email,
        subject=NOTIFICATION_SUBJECT.format(company=request.company),
        text=NOTIFICATION_TEXT.format(
            name=request.display_name,
            company=request.company,
            email=request.email,
            message=request.message,
        ),
        html=NOTIFICATION_HTML.format(
            name=escape(request.display_name),
            company=escape(request.company),
            email=escape(request.email),
            message=_html_multiline(request.message),
            brand=escape(settings.brand_name),
            site_url=escape(settings.site_url),
        ),
    )


def build_confirmation(request: PilotRequest, settings: Settings) -> OutboundEmail:
    """Short acknowledgment sent to the requester."""
    greeting_name = f" {request.name}" if request.name else ""
    return OutboundEmail(
        sender=settings.pilot_from_email,
        to=[request.email],
        subject=CONFIRMATION_SUBJECT.format(brand=settings.brand_name),
        text=CONFIRMATION_TEXT.format(
            greeting_name=greeting_name,
            company=request.company,
            brand=settings.brand_name,
            contact_email=settings.contact_email,
            site_url=settings.site_url,
        ),
        html=CONFIRMATION_HTML.format(
            greeting_name=escape(greeting_name),
            company=escape(request.company),
            brand=escape(settings.brand_name),
            contact_email=escape(settings.contact_email),
            site_url=escape(settings.site_url),
        ),
    )
