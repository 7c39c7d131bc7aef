"""
MJML Email Templates
Booking lifecycle emails, rendered with MJML for cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL

# App theme colors - Pitch green / slate
THEME = {
    "primary": "#16a34a",
    "primary_dark": "#15803d",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you booked a ground with us.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def booking_details_section(
    ground_name: str,
    booking_date: str,
    start_time: str,
    end_time: str,
    total_amount: str,
) -> str:
    return f"""
    <mj-text padding="16px 0 0 0">
      <strong>Ground:</strong> {ground_name}<br/>
      <strong>Date:</strong> {booking_date}<br/>
      <strong>Time:</strong> {start_time} - {end_time}<br/>
      <strong>Amount:</strong> ₹{total_amount}
    </mj-text>
    """


def booking_requested_template(user_name: str, details: str) -> str:
    content = f"""
    <mj-text>Hello {user_name},</mj-text>
    <mj-text>
      We've received your booking request. It is pending until our staff confirm it.
    </mj-text>
    {details}
    """
    return get_base_template(
        title="Booking Request Received",
        preview_text="Your booking request is pending confirmation",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-bookings",
        cta_label="View My Bookings",
    )


def admin_new_booking_template(user_name: str, details: str) -> str:
    content = f"""
    <mj-text>{user_name} has requested a booking that needs your review.</mj-text>
    {details}
    """
    return get_base_template(
        title="New Booking Request",
        preview_text=f"New booking request from {user_name}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin",
        cta_label="Review Bookings",
    )


def booking_confirmed_template(user_name: str, details: str) -> str:
    content = f"""
    <mj-text>Hello {user_name},</mj-text>
    <mj-text>Your booking has been confirmed. Here are the details:</mj-text>
    {details}
    <mj-text>See you on the ground!</mj-text>
    """
    return get_base_template(
        title="Booking Confirmed!",
        preview_text="Your booking has been confirmed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-bookings",
        cta_label="View My Bookings",
    )


def booking_cancelled_template(user_name: str, details: str) -> str:
    content = f"""
    <mj-text>Hello {user_name},</mj-text>
    <mj-text>Your booking has been cancelled. Here were the details:</mj-text>
    {details}
    <mj-text>The time slot is now available for rebooking.</mj-text>
    """
    return get_base_template(
        title="Booking Cancelled",
        preview_text="Your booking has been cancelled",
        content_sections=content,
    )


def booking_rejected_template(user_name: str, details: str) -> str:
    content = f"""
    <mj-text>Hello {user_name},</mj-text>
    <mj-text>
      Unfortunately your booking request could not be accepted. Please choose another slot.
    </mj-text>
    {details}
    """
    return get_base_template(
        title="Booking Request Rejected",
        preview_text="Your booking request was not accepted",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/book",
        cta_label="Book Another Slot",
    )


def booking_rescheduled_template(user_name: str, previous_details: str, details: str) -> str:
    content = f"""
    <mj-text>Hello {user_name},</mj-text>
    <mj-text>Your booking has been moved.</mj-text>
    <mj-text color="{THEME['text_muted']}" padding="16px 0 0 0">Previously:</mj-text>
    {previous_details}
    <mj-text color="{THEME['text_muted']}" padding="16px 0 0 0">Now:</mj-text>
    {details}
    """
    return get_base_template(
        title="Booking Rescheduled",
        preview_text="Your booking has a new time",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-bookings",
        cta_label="View My Bookings",
    )
