"""
Unit Tests for Email Service
============================
SMTP delivery, dev mode logging and delivery failures.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from smartrack.core.errors import EmailDeliveryError
from smartrack.services.email_service import EmailService


@pytest.fixture
def smtp_email_service():
    return EmailService(
        smtp_host="smtp.smartrack.io",
        smtp_port=587,
        smtp_user="mailer",
        smtp_password="secret",
        smtp_use_tls=True,
        from_email="no-reply@smartrack.io",
    )


def _smtp_mock(mock_smtp_class):
    server = MagicMock()
    mock_smtp_class.return_value.__enter__.return_value = server
    return server


class TestEmailService:
    """Test email delivery."""

    def test_is_configured(self, smtp_email_service):
        assert smtp_email_service.is_configured is True
        assert EmailService().is_configured is False

    def test_redact_email(self):
        assert EmailService.redact_email("jane@acme.io") == "ja***@acme.io"
        assert EmailService.redact_email("no-at-sign") == "redacted"

    @pytest.mark.asyncio
    async def test_dev_mode_does_not_connect(self):
        with patch("smartrack.services.email_service.smtplib.SMTP") as mock_smtp:
            await EmailService().send_reset_password_email(
                "jane@acme.io", name="Jane", link="https://x/reset", expiry_hours=1
            )

        mock_smtp.assert_not_called()

    @pytest.mark.asyncio
    async def test_reset_email_sent_over_starttls(self, smtp_email_service):
        with patch("smartrack.services.email_service.smtplib.SMTP") as mock_smtp:
            server = _smtp_mock(mock_smtp)

            await smtp_email_service.send_reset_password_email(
                "jane@acme.io",
                name="Jane",
                link="https://app.smartrack.io/reset-password?reqId=1&reqVerify=abc",
                expiry_hours=1,
            )

        mock_smtp.assert_called_once_with("smtp.smartrack.io", 587, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        sender, recipients, message = server.sendmail.call_args[0]
        assert sender == "no-reply@smartrack.io"
        assert recipients == ["jane@acme.io"]
        assert "Subject: SmartRack password reset" in message

    @pytest.mark.asyncio
    async def test_organization_invite_subject(self, smtp_email_service):
        with patch("smartrack.services.email_service.smtplib.SMTP") as mock_smtp:
            server = _smtp_mock(mock_smtp)

            await smtp_email_service.send_organization_invite_email(
                "olivia@acme.io",
                name="Olivia",
                link="https://app.smartrack.io/reset-password",
                organization_name="Acme Retail",
            )

        message = server.sendmail.call_args[0][2]
        assert "Subject: Invitation to Acme Retail" in message

    @pytest.mark.asyncio
    async def test_delivery_failure_raises(self, smtp_email_service):
        with patch("smartrack.services.email_service.smtplib.SMTP") as mock_smtp:
            server = _smtp_mock(mock_smtp)
            server.sendmail.side_effect = smtplib.SMTPException("rejected")

            with pytest.raises(EmailDeliveryError):
                await smtp_email_service.send_general_invite_email(
                    "admin@smartrack.io", name="Sam", link="https://x"
                )

    @pytest.mark.asyncio
    async def test_connection_failure_raises(self, smtp_email_service):
        with patch(
            "smartrack.services.email_service.smtplib.SMTP",
            side_effect=ConnectionRefusedError(),
        ):
            with pytest.raises(EmailDeliveryError):
                await smtp_email_service.send_general_invite_email(
                    "admin@smartrack.io", name="Sam", link="https://x"
                )
