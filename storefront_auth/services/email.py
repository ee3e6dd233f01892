from __future__ import annotations

from email.mime.text import MIMEText
import logging
import smtplib

from storefront_auth.config import settings
from storefront_auth.services.dispatch import DispatchError, DispatchReceipt

LOGGER = logging.getLogger(__name__)


class EmailSendError(DispatchError):
    pass


def _sender() -> str:
    sender = settings.otp_email_sender
    if not sender:
        raise EmailSendError("OTP email sender is not configured")
    return f"{settings.brand_name} <{sender}>"


def build_message(sender: str, recipient: str, subject: str, body: str) -> MIMEText:
    message = MIMEText(body, "plain", "utf-8")
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    return message


class SmtpChannel:
    def __init__(self, timeout: int | None = None) -> None:
        if timeout is None:
            timeout = settings.dispatch_timeout_seconds
        self._timeout = timeout

    def send_message(self, destination: str, body: str) -> DispatchReceipt:
        if not settings.smtp_username or not settings.smtp_password:
            raise EmailSendError("SMTP credentials are not configured")
        sender = _sender()
        message = build_message(sender, destination, settings.otp_email_subject, body)
        smtp_class = smtplib.SMTP_SSL if settings.smtp_use_ssl else smtplib.SMTP
        try:
            with smtp_class(
                settings.smtp_host, settings.smtp_port, timeout=self._timeout
            ) as server:
                if not settings.smtp_use_ssl:
                    server.starttls()
                server.login(settings.smtp_username, settings.smtp_password)
                server.sendmail(
                    settings.otp_email_sender, [destination], message.as_string()
                )
        except smtplib.SMTPException as exc:
            LOGGER.error("SMTP error host=%s error=%s", settings.smtp_host, exc)
            raise EmailSendError("Failed to send OTP email") from exc
        except OSError as exc:
            raise EmailSendError("Failed to reach SMTP server") from exc
        return DispatchReceipt(accepted=True)

