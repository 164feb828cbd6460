"""
Outbound mail for the auth flows (password reset links).

Sends through SendGrid when SENDGRID_API_KEY and SENDGRID_FROM_EMAIL are set;
otherwise only logs that a message would have been sent. Failures are logged and
reported through the return value, never raised.
"""

import logging
from html import escape

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.core.config import settings

logger = logging.getLogger(__name__)


def redact_email(email: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def is_configured() -> bool:
    return bool(settings.SENDGRID_API_KEY and settings.SENDGRID_FROM_EMAIL)


def build_reset_link(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/reset-password?token={token}"


def render_password_reset_email(reset_link: str) -> str:
    link = escape(reset_link, quote=True)
    name = escape(settings.PROJECT_NAME)
    return f"""
<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Reset Your Password - {name}</title></head>
<body style="margin: 0; padding: 40px 20px; background-color: #f4f4f4; font-family: Arial, Helvetica, sans-serif;">
  <table role="presentation" style="width: 100%; max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 8px;" cellpadding="0" cellspacing="0">
    <tr><td style="padding: 32px; text-align: center;"><h1 style="margin: 0; color: #1f2937;">{name}</h1></td></tr>
    <tr><td style="padding: 0 32px 16px 32px; color: #1f2937; font-size: 16px; line-height: 24px;">
      <p>We received a request to reset your password. Click the button below to choose a new one.</p>
      <p style="text-align: center; margin: 30px 0;">
        <a href="{link}" style="display: inline-block; padding: 14px 36px; background: #667eea; color: #ffffff; text-decoration: none; border-radius: 6px;">Reset Password</a>
      </p>
      <p>This link expires in 1 hour.</p>
      <p style="color: #6b7280; font-size: 14px;">If you didn't request this, you can ignore this email. Your password will not change.</p>
    </td></tr>
  </table>
</body>
</html>
"""


def send_password_reset_email(to_email: str, reset_link: str) -> bool:
    """Dispatch the reset email. Returns True when the provider accepted it."""
    if not is_configured():
        logger.info("mail not configured, skipping password reset email to %s", redact_email(to_email))
        return False

    message = Mail(
        from_email=settings.SENDGRID_FROM_EMAIL,
        to_emails=to_email,
        subject=f"{settings.PROJECT_NAME} Password Reset",
        html_content=render_password_reset_email(reset_link),
    )
    try:
        response = SendGridAPIClient(settings.SENDGRID_API_KEY).send(message)
    except Exception:
        logger.exception("failed to send password reset email to %s", redact_email(to_email))
        return False

    logger.info("password reset email sent to %s (status=%s)", redact_email(to_email), response.status_code)
    return 200 <= response.status_code < 300
