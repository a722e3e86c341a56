"""
comfin/services/email_service.py

Purpose: Outgoing email via SMTP

- Sends HTML + plain-text mail with aiosmtplib
- Renders the OTP email
- Raises ExternalServiceError on delivery failure; callers decide whether
  a failure matters
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from comfin.core.config import Settings
from comfin.core.exceptions import ExternalServiceError
from comfin.core.logging import get_logger

logger = get_logger(__name__)

OTP_SUBJECT = "Your OTP for Com Financial Services Authentication"


class EmailService:
    """Service for sending email through the configured SMTP relay"""

    def __init__(self, config: Settings):
        self.smtp_host = config.SMTP_HOST
        self.smtp_port = config.SMTP_PORT
        self.smtp_user = config.SMTP_USER
        self.smtp_password = config.SMTP_PASSWORD
        self.start_tls = config.SMTP_START_TLS
        self.from_email = config.EMAIL_FROM
        self.from_name = config.EMAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        """Check if SMTP credentials are present"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> None:
        """
        Sends an email.

        Args:
            to_email: Recipient address
            subject: Subject line
            html_content: HTML body
            text_content: Optional plain-text fallback

        Raises:
            ExternalServiceError: If SMTP is unconfigured or delivery fails
        """
        if not self.is_configured:
            raise ExternalServiceError("Email service is not configured")

        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject

        # Plain text first so HTML is preferred by clients
        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.start_tls,
                timeout=15,
            )
        except aiosmtplib.SMTPException as e:
            logger.error(f"❌ SMTP error sending to {to_email}: {e}")
            raise ExternalServiceError("Failed to send email") from e
        except OSError as e:
            logger.error(f"❌ SMTP connection error sending to {to_email}: {e}")
            raise ExternalServiceError("Failed to send email") from e

        logger.info(f"📤 Email sent to {to_email}: {subject}")

    async def send_otp_email(self, to_email: str, otp: str, validity_minutes: int) -> None:
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2>Your One-Time Password</h2>
          <p>Use the following OTP to complete your authentication:</p>
          <div style="background-color: #f4f4f4; padding: 15px; text-align: center; font-size: 24px; letter-spacing: 5px; font-weight: bold;">
            {otp}
          </div>
          <p>This OTP will expire in {validity_minutes} minutes.</p>
          <p>If you didn't request this OTP, please ignore this email.</p>
        </div>
        """
        text = (
            f"Your OTP is {otp}. It expires in {validity_minutes} minutes.\n"
            "If you didn't request this OTP, please ignore this email."
        )
        await self.send_email(to_email, OTP_SUBJECT, html, text)
