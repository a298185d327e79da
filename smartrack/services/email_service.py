"""
Email Service
-------------
Transactional emails of the auth flow: password reset links and invitations
to set the initial password.

Delivery goes through SMTP. Without an SMTP host the service runs in dev mode
and only logs the email. A failed delivery raises EmailDeliveryError; without
the email the user would have no way to continue, so callers must not
swallow it.
"""

import asyncio
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import Optional

from loguru import logger

from smartrack.core.config_manager import ApplicationSettings
from smartrack.core.errors import EmailDeliveryError


class EmailService:
    """Sends plain text transactional emails."""

    def __init__(
        self,
        *,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_use_tls: bool = True,
        from_email: Optional[str] = None,
        from_name: str = "SmartRack",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    @classmethod
    def from_settings(cls, app_settings: ApplicationSettings) -> "EmailService":
        return cls(
            smtp_host=app_settings.smtp_host,
            smtp_port=app_settings.smtp_port,
            smtp_user=app_settings.smtp_user,
            smtp_password=app_settings.smtp_password,
            smtp_use_tls=app_settings.smtp_use_tls,
            from_email=app_settings.email_from_address,
            from_name=app_settings.email_from_name,
        )

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return bool(self.smtp_host and self.from_email)

    @staticmethod
    def redact_email(email: str) -> str:
        """Redact an email address for logging to avoid PII leakage."""
        if "@" not in email:
            return "redacted"
        local, domain = email.split("@", 1)
        return f"{local[:2]}***@{domain}"

    def _send_email(self, to_email: str, subject: str, text_body: str) -> None:
        if not self.is_configured:
            # Dev mode: log the email instead of sending
            logger.info(
                f"Email not sent (SMTP not configured): to={self.redact_email(to_email)} "
                f"subject={subject!r}"
            )
            return

        message = MIMEText(text_body, "plain", "utf-8")
        message["Subject"] = subject
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email

        try:
            context = ssl.create_default_context()
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, [to_email], message.as_string())
            else:
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, context=context, timeout=30
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, [to_email], message.as_string())
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(
                f"Email delivery failed: to={self.redact_email(to_email)} "
                f"error_type={type(e).__name__} error={e}"
            )
            raise EmailDeliveryError(f"Failed to send email '{subject}'") from e

        logger.info(f"Email sent: to={self.redact_email(to_email)} subject={subject!r}")

    async def send_reset_password_email(
        self, to_email: str, name: str, link: str, expiry_hours: int
    ) -> None:
        """Send the reset password instructions with the link to the reset page."""
        text_body = (
            f"Hello {name},\n\n"
            "we received a request to reset your SmartRack password. "
            "Use the link below to choose a new password:\n\n"
            f"{link}\n\n"
            f"The link is valid for {expiry_hours} hour(s). "
            "If you did not request the change, you can ignore this email.\n\n"
            "SmartRack"
        )
        await asyncio.to_thread(
            self._send_email, to_email, "SmartRack password reset", text_body
        )

    async def send_general_invite_email(self, to_email: str, name: str, link: str) -> None:
        """Invite a system administrator to set their password."""
        text_body = (
            f"Hello {name},\n\n"
            "you have been invited to administer SmartRack. "
            "Set your password using the link below:\n\n"
            f"{link}\n\n"
            "SmartRack"
        )
        await asyncio.to_thread(
            self._send_email, to_email, "Invitation to SmartRack", text_body
        )

    async def send_organization_invite_email(
        self, to_email: str, name: str, link: str, organization_name: str
    ) -> None:
        """Invite an organization member to set their password."""
        text_body = (
            f"Hello {name},\n\n"
            f"you have been invited to join {organization_name} in SmartRack. "
            "Set your password using the link below:\n\n"
            f"{link}\n\n"
            "SmartRack"
        )
        await asyncio.to_thread(
            self._send_email, to_email, f"Invitation to {organization_name}", text_body
        )
