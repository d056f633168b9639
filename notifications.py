"""
Booking confirmation e-mails via SMTP.
Set SMTP_HOST, SMTP_USER, SMTP_PASSWORD and FROM_EMAIL in .env; without them sending is skipped.
"""
import asyncio
import datetime
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List

from config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingConfirmation:
    recipient: str
    first_name: str
    dates: List[datetime.date]
    spot_number: int
    level: str
    guest_name: str
    vehicle_type: str
    license_plate: str

    @property
    def is_weekend(self) -> bool:
        return len(self.dates) > 1


def _date_phrase(confirmation: BookingConfirmation) -> str:
    first = confirmation.dates[0].isoformat()
    if confirmation.is_weekend:
        return f"the weekend starting {first}"
    return first


def render_confirmation(confirmation: BookingConfirmation) -> tuple[str, str, str]:
    """Returns (subject, plain text, html)."""
    when = _date_phrase(confirmation)
    spot = f"{confirmation.spot_number} ({confirmation.level})"
    subject = "Guest Parking Booking Confirmation"
    lines = [
        f"Hi {confirmation.first_name},",
        "",
        f"Your guest parking booking has been confirmed for {when}.",
        "",
        f"Spot: {spot}",
        f"Guest: {confirmation.guest_name}",
        f"Vehicle: {confirmation.vehicle_type}",
        f"License Plate: {confirmation.license_plate}",
        "",
        "Please call the superintendent if you need to cancel a booking.",
    ]
    html = (
        f"<p>Hi {confirmation.first_name},</p>"
        f"<p>Your guest parking booking has been confirmed for <strong>{when}</strong>.</p>"
        "<ul>"
        f"<li><strong>Spot:</strong> {spot}</li>"
        f"<li><strong>Guest:</strong> {confirmation.guest_name}</li>"
        f"<li><strong>Vehicle:</strong> {confirmation.vehicle_type}</li>"
        f"<li><strong>License Plate:</strong> {confirmation.license_plate}</li>"
        "</ul>"
        "<p>Please call the superintendent if you need to cancel a booking.</p>"
    )
    return subject, "\n".join(lines), html


class EmailNotifier:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.smtp_user and s.smtp_password)

    def _send(self, confirmation: BookingConfirmation) -> None:
        s = self.settings
        subject, body, html = render_confirmation(confirmation)
        from_addr = s.from_email or s.smtp_user
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = confirmation.recipient
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(html, "html"))
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=10) as server:
            server.starttls()
            server.login(s.smtp_user, s.smtp_password)
            server.sendmail(from_addr, [confirmation.recipient], msg.as_string())

    async def __call__(self, confirmation: BookingConfirmation) -> None:
        if not self.configured:
            logger.debug("SMTP not configured; skipping confirmation email to %s", confirmation.recipient)
            return
        # smtplib blocks; keep it off the event loop.
        await asyncio.to_thread(self._send, confirmation)
        logger.info("Confirmation email sent to %s", confirmation.recipient)
