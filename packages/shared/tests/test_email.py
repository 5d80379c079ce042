"""Tests for the email module."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from leo_shared.email import (
    EmailConfig,
    EmailSender,
    _build_new_user_html,
    _build_password_reset_html,
    _build_welcome_html,
    _format_registration_time,
    send_signup_emails,
)

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def config() -> EmailConfig:
    """Email config with a test API key."""
    return EmailConfig(
        api_key="re_test_key",
        from_email="noreply@leo.test",
        from_name="Leo Test",
        notify_email="team@leo.test",
        app_url="https://portal.leo.test",
    )


@pytest.fixture
def disabled_config() -> EmailConfig:
    """Email config without an API key."""
    return EmailConfig(api_key="", from_email="noreply@leo.test")


# =============================================================================
# Config Tests
# =============================================================================


class TestEmailConfig:
    """Tests for EmailConfig."""

    def test_from_env_with_values(self, monkeypatch):
        """Test loading config from environment variables."""
        monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
        monkeypatch.setenv("RESEND_FROM_EMAIL", "noreply@test.com")
        monkeypatch.setenv("RESEND_FROM_NAME", "Test Agent")
        monkeypatch.setenv("LEO_NOTIFY_EMAIL", "ops@test.com")
        monkeypatch.setenv("APP_BASE_URL", "https://app.test.com/")

        config = EmailConfig.from_env()

        assert config.api_key == "re_test_key"
        assert config.from_email == "noreply@test.com"
        assert config.from_name == "Test Agent"
        assert config.notify_email == "ops@test.com"
        assert config.app_url == "https://app.test.com"

    def test_from_env_with_defaults(self, monkeypatch):
        """Test loading config with default values."""
        for name in (
            "RESEND_API_KEY",
            "RESEND_FROM_EMAIL",
            "RESEND_FROM_NAME",
            "LEO_NOTIFY_EMAIL",
            "APP_BASE_URL",
        ):
            monkeypatch.delenv(name, raising=False)

        config = EmailConfig.from_env()

        assert config.api_key == ""
        assert config.from_email == "onboarding@resend.dev"
        assert config.from_name == "Leo Voice Agent"
        assert config.notify_email == "leovoiceagent@gmail.com"

    def test_sender_header(self, config):
        assert config.sender == "Leo Test <noreply@leo.test>"


# =============================================================================
# Template Tests
# =============================================================================


class TestTemplates:
    """Tests for the HTML builders."""

    def test_registration_time_is_utc(self):
        when = datetime(2025, 3, 3, 15, 4, tzinfo=timezone.utc)
        assert _format_registration_time(when) == "Monday, March 03, 2025 at 03:04 PM UTC"

    def test_new_user_html_includes_details(self):
        html = _build_new_user_html(
            "jane@example.com", "Jane", datetime(2025, 3, 3, tzinfo=timezone.utc)
        )
        assert "jane@example.com" in html
        assert "Jane" in html
        assert "assigned to an organization" in html

    def test_new_user_html_escapes_name(self):
        html = _build_new_user_html(
            "x@example.com", "<script>", datetime.now(timezone.utc)
        )
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_welcome_html_links_to_app(self):
        html = _build_welcome_html("Jane", "https://portal.leo.test")
        assert "Hi Jane," in html
        assert 'href="https://portal.leo.test/app"' in html

    def test_password_reset_html_includes_link(self):
        link = "https://portal.leo.test/reset-password?token=abc"
        html = _build_password_reset_html(link)
        assert html.count(link) == 2


# =============================================================================
# Sender Tests
# =============================================================================


class TestEmailSender:
    """Tests for EmailSender."""

    @pytest.mark.asyncio
    async def test_send_without_api_key(self, disabled_config, monkeypatch):
        """Sending is skipped when Resend isn't configured."""
        mock_send = MagicMock()
        monkeypatch.setattr("resend.Emails.send", mock_send)

        sender = EmailSender(disabled_config)
        assert sender.enabled is False
        assert await sender.send_welcome_email("jane@example.com", "Jane") is False
        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_new_user_notification_goes_to_team(self, config, monkeypatch):
        mock_send = MagicMock(return_value={"id": "email_123"})
        monkeypatch.setattr("resend.Emails.send", mock_send)

        sender = EmailSender(config)
        assert await sender.send_new_user_notification("jane@example.com", "Jane") is True

        params = mock_send.call_args[0][0]
        assert params["to"] == ["team@leo.test"]
        assert params["from"] == "Leo Test <noreply@leo.test>"
        assert params["subject"] == "New User Registration - Leo Voice Agent"

    @pytest.mark.asyncio
    async def test_welcome_email_goes_to_user(self, config, monkeypatch):
        mock_send = MagicMock(return_value={"id": "email_456"})
        monkeypatch.setattr("resend.Emails.send", mock_send)

        sender = EmailSender(config)
        assert await sender.send_welcome_email("jane@example.com", "Jane") is True

        params = mock_send.call_args[0][0]
        assert params["to"] == ["jane@example.com"]
        assert params["subject"] == "Welcome to Leo Voice Agent!"

    @pytest.mark.asyncio
    async def test_password_reset_carries_token(self, config, monkeypatch):
        mock_send = MagicMock(return_value={"id": "email_789"})
        monkeypatch.setattr("resend.Emails.send", mock_send)

        sender = EmailSender(config)
        assert await sender.send_password_reset("jane@example.com", "tok123") is True

        params = mock_send.call_args[0][0]
        assert "https://portal.leo.test/reset-password?token=tok123" in params["html"]

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self, config, monkeypatch):
        """Resend errors are logged, not raised."""
        mock_send = MagicMock(side_effect=RuntimeError("rate limited"))
        monkeypatch.setattr("resend.Emails.send", mock_send)

        sender = EmailSender(config)
        assert await sender.send_welcome_email("jane@example.com", "Jane") is False


class TestSendSignupEmails:
    """Tests for the send_signup_emails convenience function."""

    @pytest.mark.asyncio
    async def test_sends_both_emails(self, config, monkeypatch):
        mock_send = MagicMock(return_value={"id": "email_123"})
        monkeypatch.setattr("resend.Emails.send", mock_send)

        results = await send_signup_emails(
            "jane@example.com", "Jane", sender=EmailSender(config)
        )

        assert results == {"notification_sent": True, "welcome_sent": True}
        assert mock_send.call_count == 2

    @pytest.mark.asyncio
    async def test_no_op_without_api_key(self, disabled_config, monkeypatch):
        mock_send = MagicMock()
        monkeypatch.setattr("resend.Emails.send", mock_send)

        results = await send_signup_emails(
            "jane@example.com", "Jane", sender=EmailSender(disabled_config)
        )

        assert results == {"notification_sent": False, "welcome_sent": False}
        mock_send.assert_not_called()
