from dataclasses import dataclass
import re
from typing import Literal

from storefront_auth.config import settings
from storefront_auth.errors import InvalidIdentifier

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]+$")
PHONE_ALLOWED = re.compile(r"^\+?[\d\s\-.()]+$")


@dataclass(frozen=True)
class Identifier:
    value: str
    kind: Literal["email", "phone"]

    @property
    def is_email(self) -> bool:
        return self.kind == "email"


def normalize_email(raw: str) -> str:
    cleaned = raw.strip().lower()
    if not EMAIL_PATTERN.match(cleaned):
        raise InvalidIdentifier("Enter a valid email address")
    return cleaned


def normalize_phone(raw: str, default_country_code: str | None = None) -> str:
    cleaned = raw.strip()
    if not cleaned or not PHONE_ALLOWED.match(cleaned):
        raise InvalidIdentifier("Enter a valid phone number")
    if "+" in cleaned[1:]:
        raise InvalidIdentifier("Enter a valid phone number")
    digits = re.sub(r"\D", "", cleaned)
    if not cleaned.startswith("+") and len(digits) == 10:
        country_code = default_country_code or settings.default_country_code
        prefix = re.sub(r"\D", "", country_code)
        if not prefix:
            raise InvalidIdentifier("Default country code is not configured")
        digits = f"{prefix}{digits}"
    if len(digits) < 10 or len(digits) > 15:
        raise InvalidIdentifier("Phone number must include a valid country code")
    return f"+{digits}"


def normalize_identifier(raw: str | None) -> Identifier:
    """Canonical form of a login identifier: lowercased email or E.164 phone."""
    if raw is None or not raw.strip():
        raise InvalidIdentifier()
    if "@" in raw:
        return Identifier(value=normalize_email(raw), kind="email")
    return Identifier(value=normalize_phone(raw), kind="phone")
