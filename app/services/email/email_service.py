# ===== app/services/email/email_service.py =====
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from app.config.settings import settings

logger = logging.getLogger(__name__)

SUBJECTS = {
    "appointment.created": "Appointment confirmed - {establishment}",
    "appointment.rescheduled": "Appointment rescheduled - {establishment}",
    "appointment.canceled": "Appointment canceled - {establishment}",
    "appointment.completed": "Thanks for your visit - {establishment}",
}

HEADLINES = {
    "appointment.created": "Your appointment is booked!",
    "appointment.rescheduled": "Your appointment was moved.",
    "appointment.canceled": "Your appointment was canceled.",
    "appointment.completed": "Your appointment is complete.",
}


class EmailService:
    """Service for sending emails via SMTP"""

    @staticmethod
    def _get_smtp_connection():
        """Create and return SMTP connection"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except Exception as e:
            logger.error(f"Failed to connect to SMTP server: {e}")
            raise

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None,
            bcc: Optional[List[str]] = None
    ) -> bool:
        """
        Send an email using SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            plain_text: Plain text version (fallback for non-HTML clients)
            bcc: List of BCC email addresses

        Returns:
            bool: True if email sent successfully

        Raises:
            Exception: any SMTP failure, so the caller can retry
        """
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
        msg['To'] = to_email

        if plain_text:
            msg.attach(MIMEText(plain_text, 'plain'))
        msg.attach(MIMEText(html_content, 'html'))

        recipients = [to_email]
        if bcc:
            recipients.extend(bcc)

        try:
            with EmailService._get_smtp_connection() as server:
                server.sendmail(settings.EMAIL_FROM_ADDRESS, recipients, msg.as_string())
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise

        logger.info(f"Email sent successfully to {to_email}")
        return True

    @staticmethod
    def render_appointment_email(event_type: str, appointment: Dict[str, Any]) -> tuple:
        """Build (subject, html, plain_text) for an appointment event"""
        establishment = appointment["establishment"]
        service = appointment["service"]
        professional = appointment["professional"]
        customer = appointment["customer"]
        start_at = datetime.fromisoformat(appointment["start_at"])
        booking_url = f"{settings.FRONTEND_URL}/{establishment['slug']}"

        subject = SUBJECTS.get(event_type, "Appointment update - {establishment}").format(
            establishment=establishment["name"]
        )
        headline = HEADLINES.get(event_type, "Your appointment was updated.")

        details = [
            f"Date: {start_at.strftime('%d/%m/%Y')}",
            f"Time: {start_at.strftime('%H:%M')}",
            f"Service: {service['name']} ({service['duration_minutes']} min)",
            f"Professional: {professional['name']}",
        ]
        if establishment.get("address"):
            details.append(f"Address: {establishment['address']}")
        if establishment.get("phone"):
            details.append(f"Phone: {establishment['phone']}")

        html_lines = "".join(f'<p style="margin: 5px 0;">{line}</p>' for line in details)
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8">
        </head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #333; margin-top: 0;">Hi {customer['name']}!</h2>
            <p style="font-size: 16px; color: #555;">{headline}</p>
            <div style="background-color: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
                {html_lines}
            </div>
            <p style="font-size: 12px; color: #666;">
                Sent by {establishment['name']}. <a href="{booking_url}">Book another time</a>
            </p>
        </body>
        </html>
        """

        plain_text = "\n".join([f"Hi {customer['name']}!", headline, ""] + details + ["", booking_url])
        return subject, html_content, plain_text

    @staticmethod
    def send_appointment_email(event_type: str, appointment: Dict[str, Any]) -> bool:
        """Send the customer email for an appointment event. Returns False when there is no address."""
        to_email = (appointment.get("customer") or {}).get("email")
        if not to_email:
            logger.info(f"No customer email for appointment {appointment['id']}, skipping {event_type}")
            return False

        subject, html_content, plain_text = EmailService.render_appointment_email(event_type, appointment)
        return EmailService.send_email(to_email, subject, html_content, plain_text)
