"""Email sending module using Resend.

Handles the transactional emails of the Leo portal:
- New user notification to the Leo team inbox
- Welcome email to the new user
- Password reset link

Sending is a no-op when RESEND_API_KEY is not configured.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape

import resend

logger = logging.getLogger("leo-portal-email")


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class EmailConfig:
    """Email service configuration."""

    api_key: str
    from_email: str
    from_name: str = "Leo Voice Agent"
    notify_email: str = "leovoiceagent@gmail.com"
    app_url: str = "http://localhost:5173"

    @classmethod
    def from_env(cls) -> "EmailConfig":
        """Load email config from environment variables."""
        api_key = os.getenv("RESEND_API_KEY", "")
        from_email = os.getenv("RESEND_FROM_EMAIL", "onboarding@resend.dev")
        from_name = os.getenv("RESEND_FROM_NAME", "Leo Voice Agent")
        notify_email = os.getenv("LEO_NOTIFY_EMAIL", "leovoiceagent@gmail.com")
        app_url = os.getenv("APP_BASE_URL", "http://localhost:5173")

        if not api_key:
            logger.warning("RESEND_API_KEY not set - email notifications are disabled")

        return cls(
            api_key=api_key,
            from_email=from_email,
            from_name=from_name,
            notify_email=notify_email,
            app_url=app_url.rstrip("/"),
        )

    @property
    def sender(self) -> str:
        """Formatted From header."""
        return f"{self.from_name} <{self.from_email}>"


# =============================================================================
# Email Templates
# =============================================================================

_HEADER_STYLE = (
    "background: linear-gradient(135deg, #38BDF8 0%, #0EA5E9 100%); color: white; "
    "padding: 30px; border-radius: 10px 10px 0 0; text-align: center;"
)
_CONTENT_STYLE = "background: #f8f9fa; padding: 30px; border-radius: 0 0 10px 10px;"
_BUTTON_STYLE = (
    "display: inline-block; background: #38BDF8; color: white; padding: 12px 30px; "
    "text-decoration: none; border-radius: 8px; margin: 20px 0;"
)


def _format_registration_time(when: datetime) -> str:
    """Format a timestamp like 'Monday, October 19, 2026 at 03:04 PM UTC'."""
    return when.astimezone(timezone.utc).strftime("%A, %B %d, %Y at %I:%M %p UTC")


def _build_new_user_html(user_email: str, user_name: str, registered_at: datetime) -> str:
    """Build HTML content for the team notification about a signup."""
    return f"""
    <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="{_HEADER_STYLE}">
            <h1>New User Registration!</h1>
        </div>
        <div style="{_CONTENT_STYLE}">
            <p>Great news! A new user has just signed up for Leo Voice Agent.</p>

            <div style="background: white; padding: 20px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #38BDF8;">
                <p><strong style="color: #64748B;">Name:</strong> {escape(user_name)}</p>
                <p><strong style="color: #64748B;">Email:</strong> {escape(user_email)}</p>
                <p><strong style="color: #64748B;">Registration Time:</strong> {_format_registration_time(registered_at)}</p>
            </div>

            <p style="margin-top: 20px;">
                This user has been added to your system and will need to be assigned to an organization
                to access the dashboard features.
            </p>

            <p style="text-align: center; color: #64748B; font-size: 12px; margin-top: 20px;">
                This is an automated notification from Leo Voice Agent
            </p>
        </div>
    </div>
    """


def _build_welcome_html(user_name: str, app_url: str) -> str:
    """Build HTML content for the welcome email."""
    return f"""
    <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="{_HEADER_STYLE}">
            <h1>Welcome to Leo Voice Agent!</h1>
        </div>
        <div style="{_CONTENT_STYLE}">
            <p>Hi {escape(user_name)},</p>

            <p>Thanks for signing up! We're excited to have you on board.</p>

            <p>Leo Voice Agent helps you manage your properties and track voice interactions with potential tenants.</p>

            <p style="margin-top: 30px;">
                <a href="{app_url}/app" style="{_BUTTON_STYLE}">Get Started</a>
            </p>

            <p style="margin-top: 30px; color: #64748B; font-size: 14px;">
                If you have any questions, feel free to reach out to our support team.
            </p>
        </div>
    </div>
    """


def _build_password_reset_html(reset_link: str) -> str:
    """Build HTML content for the password reset email."""
    return f"""
    <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="{_HEADER_STYLE}">
            <h1>Reset Your Password</h1>
        </div>
        <div style="{_CONTENT_STYLE}">
            <p>We received a request to reset the password for your Leo Voice Agent account.</p>

            <p style="text-align: center;">
                <a href="{reset_link}" style="{_BUTTON_STYLE}">Choose a New Password</a>
            </p>

            <p style="color: #64748B; font-size: 14px;">
                This link expires in one hour. If you didn't ask for a reset, you can ignore this email.
            </p>

            <p style="color: #999; font-size: 12px; margin-top: 30px;">
                If the button doesn't work, copy and paste this link: {reset_link}
            </p>
        </div>
    </div>
    """


# =============================================================================
# Email Sender
# =============================================================================


class EmailSender:
    """Sends emails via Resend API."""

    def __init__(self, config: EmailConfig | None = None):
        """Initialize the email sender.

        Args:
            config: Email configuration. If not provided, loads from environment.
        """
        self.config = config or EmailConfig.from_env()
        resend.api_key = self.config.api_key

    @property
    def enabled(self) -> bool:
        """Whether a Resend API key is configured."""
        return bool(self.config.api_key)

    def _send(self, to: str, subject: str, html_content: str, label: str) -> bool:
        """Send one email, logging instead of raising on failure."""
        if not self.enabled:
            logger.warning(f"Resend not configured. Skipping {label}.")
            return False

        try:
            params: resend.Emails.SendParams = {
                "from": self.config.sender,
                "to": [to],
                "subject": subject,
                "html": html_content,
            }

            email_response = resend.Emails.send(params)
            logger.info(f"{label.capitalize()} sent to {to}: {email_response.get('id')}")
            return True

        except Exception as e:
            logger.error(f"Failed to send {label}: {e}")
            return False

    async def send_new_user_notification(
        self,
        user_email: str,
        user_name: str,
        registered_at: datetime | None = None,
    ) -> bool:
        """Notify the Leo team inbox that a new user signed up.

        Returns:
            True if email sent successfully, False otherwise
        """
        html_content = _build_new_user_html(
            user_email, user_name, registered_at or datetime.now(timezone.utc)
        )
        return self._send(
            self.config.notify_email,
            "New User Registration - Leo Voice Agent",
            html_content,
            "new user notification email",
        )

    async def send_welcome_email(self, user_email: str, user_name: str) -> bool:
        """Send the welcome email to a new user.

        Returns:
            True if email sent successfully, False otherwise
        """
        html_content = _build_welcome_html(user_name, self.config.app_url)
        return self._send(
            user_email,
            "Welcome to Leo Voice Agent!",
            html_content,
            "welcome email",
        )

    async def send_password_reset(self, user_email: str, reset_token: str) -> bool:
        """Send a password reset link.

        Returns:
            True if email sent successfully, False otherwise
        """
        reset_link = f"{self.config.app_url}/reset-password?token={reset_token}"
        return self._send(
            user_email,
            "Reset your Leo Voice Agent password",
            _build_password_reset_html(reset_link),
            "password reset email",
        )


# =============================================================================
# Convenience Functions
# =============================================================================


async def send_signup_emails(
    user_email: str,
    user_name: str,
    sender: EmailSender | None = None,
) -> dict[str, bool]:
    """Send the team notification and the welcome email for a new signup.

    Returns:
        Dict with keys 'notification_sent' and 'welcome_sent'
    """
    sender = sender or EmailSender()
    return {
        "notification_sent": await sender.send_new_user_notification(
            user_email, user_name
        ),
        "welcome_sent": await sender.send_welcome_email(user_email, user_name),
    }
