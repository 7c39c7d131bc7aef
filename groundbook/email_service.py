"""
Email Service using Resend
Provides booking emails using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import ADMIN_NOTIFICATION_EMAIL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    admin_new_booking_template,
    booking_cancelled_template,
    booking_confirmed_template,
    booking_details_section,
    booking_rejected_template,
    booking_requested_template,
    booking_rescheduled_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfigured(Exception):
    """Raised when no email provider is configured"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict-like object with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        if html is not None:
            if getattr(result, "errors", None):
                logger.warning(f"MJML compilation warnings: {result.errors}")
            return html
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfigured("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": sender,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Booking lifecycle emails
# ============================================


def _details(snapshot: dict) -> str:
    return booking_details_section(
        ground_name=snapshot.get("ground_name") or "Ground",
        booking_date=snapshot["booking_date"],
        start_time=snapshot["start_time"][:5],
        end_time=snapshot["end_time"][:5],
        total_amount=snapshot["total_amount"],
    )


def send_booking_requested_email(to: str, user_name: str, snapshot: dict) -> dict:
    return send_email(
        to=to,
        subject="Booking Request Received",
        mjml_content=booking_requested_template(user_name, _details(snapshot)),
    )


def send_admin_new_booking_email(user_name: str, snapshot: dict) -> Optional[dict]:
    """Alert the venue inbox about a booking awaiting review"""
    if not ADMIN_NOTIFICATION_EMAIL:
        logger.debug("ADMIN_NOTIFICATION_EMAIL not set, skipping admin alert")
        return None
    return send_email(
        to=ADMIN_NOTIFICATION_EMAIL,
        subject=f"New Booking Request - {snapshot.get('ground_name') or 'Ground'}",
        mjml_content=admin_new_booking_template(user_name, _details(snapshot)),
    )


def send_booking_confirmed_email(to: str, user_name: str, snapshot: dict) -> dict:
    return send_email(
        to=to,
        subject="Booking Confirmed!",
        mjml_content=booking_confirmed_template(user_name, _details(snapshot)),
    )


def send_booking_cancelled_email(to: str, user_name: str, snapshot: dict) -> dict:
    return send_email(
        to=to,
        subject="Booking Cancelled",
        mjml_content=booking_cancelled_template(user_name, _details(snapshot)),
    )


def send_booking_rejected_email(to: str, user_name: str, snapshot: dict) -> dict:
    return send_email(
        to=to,
        subject="Booking Request Rejected",
        mjml_content=booking_rejected_template(user_name, _details(snapshot)),
    )


def send_booking_rescheduled_email(
    to: str, user_name: str, previous: dict, snapshot: dict
) -> dict:
    return send_email(
        to=to,
        subject="Booking Rescheduled",
        mjml_content=booking_rescheduled_template(user_name, _details(previous), _details(snapshot)),
    )
