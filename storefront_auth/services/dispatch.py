from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional, Protocol

from storefront_auth.config import settings
from storefront_auth.services.identifiers import Identifier

LOGGER = logging.getLogger(__name__)


class DispatchError(RuntimeError):
    pass


@dataclass(frozen=True)
class DispatchReceipt:
    accepted: bool
    detail: Optional[str] = None


class MessageChannel(Protocol):
    def send_message(self, destination: str, body: str) -> DispatchReceipt: ...


class ConsoleChannel:
    """Development channel: writes the message to the log instead of sending it."""

    def __init__(self, label: str) -> None:
        self._label = label

    def send_message(self, destination: str, body: str) -> DispatchReceipt:
        LOGGER.warning("[%s] to=%s body=%s", self._label, destination, body)
        return DispatchReceipt(accepted=True)


class OtpDispatcher:
    """Routes a message to the SMS or email channel by identifier kind."""

    def __init__(self, sms_channel: MessageChannel, email_channel: MessageChannel) -> None:
        self._sms_channel = sms_channel
        self._email_channel = email_channel

    def send(self, identifier: Identifier, body: str) -> DispatchReceipt:
        channel = self._email_channel if identifier.is_email else self._sms_channel
        try:
            receipt = channel.send_message(identifier.value, body)
        except DispatchError as exc:
            LOGGER.warning(
                "Dispatch rejected kind=%s error=%s", identifier.kind, exc
            )
            return DispatchReceipt(accepted=False, detail=str(exc))
        if not receipt.accepted:
            LOGGER.warning(
                "Dispatch not accepted kind=%s detail=%s", identifier.kind, receipt.detail
            )
        return receipt


def render_otp_message(code: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return (
        f"Your {settings.brand_name} OTP code is {code}."
        f" It expires in {minutes} minute(s)."
        " If you did not request this code, you can ignore this message."
    )


def build_sms_channel(provider: str) -> MessageChannel:
    if provider == "twilio":
        from storefront_auth.services.sms import TwilioSmsChannel

        return TwilioSmsChannel()
    if provider == "console":
        return ConsoleChannel("sms")
    raise ValueError(f"Unknown SMS provider '{provider}'")


def build_email_channel(provider: str) -> MessageChannel:
    if provider == "smtp":
        from storefront_auth.services.email import SmtpChannel

        return SmtpChannel()
    if provider == "console":
        return ConsoleChannel("email")
    raise ValueError(f"Unknown email provider '{provider}'")


def build_dispatcher() -> OtpDispatcher:
    return OtpDispatcher(
        sms_channel=build_sms_channel(settings.sms_provider),
        email_channel=build_email_channel(settings.email_provider),
    )
