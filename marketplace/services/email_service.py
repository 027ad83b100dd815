import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from marketplace.core.config import settings

logger = logging.getLogger(__name__)


def _send_email_sync(to_email: str, subject: str, html_body: str) -> None:
    """Send email via SMTP (blocking). Use from background task."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send")
        return
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def format_period(start: datetime, end: datetime) -> str:
    """e.g. 'Monday, December 15, 2025, 02:00 PM – 03:00 PM (UTC)'."""
    return f"{start.strftime('%A, %B %d, %Y, %I:%M %p')} – {end.strftime('%I:%M %p')} (UTC)"


def build_booking_email_html(heading: str, greeting: str, rows: list[tuple[str, str]]) -> str:
    """Build HTML body with a heading and a label/value card. Values are escaped here."""
    rows_html = "".join(
        f"""
                    <p style="margin:12px 0 0 0;font-size:12px;text-transform:uppercase;letter-spacing:0.5px;color:#6b7280;">{_html_escape(label)}</p>
                    <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{_html_escape(value)}</p>"""
        for label, value in rows
    )
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{_html_escape(heading)}</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Oxygen,Ubuntu,sans-serif;background-color:#f3f4f6;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#f3f4f6;">
    <tr>
      <td align="center" style="padding:40px 16px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;background:#ffffff;border-radius:12px;overflow:hidden;">
          <tr>
            <td style="padding:32px 32px 24px 32px;">
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">{_html_escape(heading)}</h1>
              <p style="margin:0 0 24px 0;font-size:15px;color:#6b7280;">{_html_escape(greeting)}</p>
              <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background:#f9fafb;border-radius:8px;margin-bottom:24px;">
                <tr>
                  <td style="padding:8px 24px 20px 24px;">{rows_html}
                  </td>
                </tr>
              </table>
            </td>
          </tr>
          <tr>
            <td style="padding:24px 32px 32px 32px;background:#f9fafb;border-top:1px solid #e5e7eb;">
              <p style="margin:0;font-size:13px;font-weight:600;color:#111827;">{_html_escape(settings.site_name)}</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def send_new_booking_email(
    to_email: str,
    provider_name: str,
    client_name: str,
    service_title: str,
    variation_name: str,
    start: datetime,
    end: datetime,
) -> None:
    """Tell a provider about a new booking (call from background task)."""
    subject = f"{settings.site_name} – New booking: {service_title}"
    html = build_booking_email_html(
        heading="New booking",
        greeting=f"Hi {provider_name}, {client_name} booked one of your services.",
        rows=[
            ("Service", f"{service_title} – {variation_name}"),
            ("When", format_period(start, end)),
        ],
    )
    _send_email_sync(to_email, subject, html)


def send_booking_cancelled_email(
    to_email: str,
    recipient_name: str,
    service_title: str,
    start: datetime,
    end: datetime,
    reason: str | None,
) -> None:
    """Tell the other party that a booking was cancelled (call from background task)."""
    subject = f"{settings.site_name} – Booking cancelled: {service_title}"
    html = build_booking_email_html(
        heading="Booking cancelled",
        greeting=f"Hi {recipient_name}, a booking was cancelled.",
        rows=[
            ("Service", service_title),
            ("When", format_period(start, end)),
            ("Reason", reason or "-"),
        ],
    )
    _send_email_sync(to_email, subject, html)
