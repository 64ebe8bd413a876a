"""
Outbound email over SMTP.

Delivery is disabled when SMTP_HOST is not configured; callers treat email as
a best-effort side channel and never fail a business operation because of it.
"""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr

from core import config

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the SMTP server."""
    pass


class EmailService:
    """Send HTML emails through the configured SMTP server."""

    @staticmethod
    def is_enabled() -> bool:
        return bool(config.SMTP_HOST)

    @staticmethod
    def send_email(to: str, subject: str, html_content: str) -> bool:
        """
        Send one HTML email.

        Args:
            to: Recipient address
            subject: Subject line
            html_content: HTML body

        Returns:
            True if the message was handed to the SMTP server, False if email is disabled

        Raises:
            EmailDeliveryError: If the SMTP conversation fails
        """
        if not EmailService.is_enabled():
            logger.debug(f"SMTP not configured, skipping email to {to}")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = config.EMAIL_FROM_ADDRESS
        msg["To"] = to
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        sender = parseaddr(config.EMAIL_FROM_ADDRESS)[1]

        try:
            if config.SMTP_PORT == 465:
                context = ssl.create_default_context()
                server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, context=context, timeout=30)
            else:
                server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30)
                if config.SMTP_USE_TLS:
                    server.starttls(context=ssl.create_default_context())

            try:
                if config.SMTP_USERNAME:
                    server.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
                server.sendmail(sender, [to], msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"Failed to send email to {to}: {e}") from e

        logger.info(f"Email sent to {to}: {subject}")
        return True
