from __future__ import annotations

import base64
import logging
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from storefront_auth.config import settings
from storefront_auth.services.dispatch import DispatchError, DispatchReceipt
from storefront_auth.services.identifiers import normalize_phone
from storefront_auth.errors import InvalidIdentifier

LOGGER = logging.getLogger(__name__)

TWILIO_MESSAGES_ENDPOINT = (
    "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
)


class SmsSendError(DispatchError):
    pass


class TwilioSmsChannel:
    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_phone: str | None = None,
        timeout: int | None = None,
    ) -> None:
        if account_sid is None:
            account_sid = settings.twilio_account_sid
        if auth_token is None:
            auth_token = settings.twilio_auth_token
        if from_phone is None:
            from_phone = settings.twilio_phone_number
        if timeout is None:
            timeout = settings.dispatch_timeout_seconds
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_phone = from_phone
        self._timeout = timeout

    def send_message(self, destination: str, body: str) -> DispatchReceipt:
        if not self._account_sid or not self._auth_token or not self._from_phone:
            raise SmsSendError("Twilio is not configured")

        to_number = _to_e164(destination)
        from_number = _to_e164(self._from_phone)
        LOGGER.info("Sending OTP SMS to=%s from=%s", to_number, from_number)
        request = Request(
            TWILIO_MESSAGES_ENDPOINT.format(account_sid=self._account_sid),
            data=urlencode({"To": to_number, "From": from_number, "Body": body}).encode(
                "utf-8"
            ),
            headers={
                "Authorization": f"Basic {self._basic_token()}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            method="POST",
        )
        try:
            with urlopen(request, timeout=self._timeout) as response:
                response.read()
        except HTTPError as exc:
            error_body = exc.read().decode("utf-8", errors="replace")
            LOGGER.error(
                "Twilio API error to=%s from=%s response=%s",
                to_number,
                from_number,
                error_body,
            )
            raise SmsSendError("Failed to send OTP SMS") from exc
        except OSError as exc:
            # URLError and socket timeouts both land here.
            raise SmsSendError("Failed to reach Twilio API") from exc
        return DispatchReceipt(accepted=True)

    def _basic_token(self) -> str:
        credentials = f"{self._account_sid}:{self._auth_token}".encode("utf-8")
        return base64.b64encode(credentials).decode("ascii")


def _to_e164(phone_number: str) -> str:
    try:
        return normalize_phone(phone_number)
    except InvalidIdentifier as exc:
        raise SmsSendError(str(exc)) from exc
