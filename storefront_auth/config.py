import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./storefront_auth.db")
    otp_length: int = int(os.getenv("OTP_LENGTH", "6"))
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "300"))
    otp_max_attempts: int = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
    otp_resend_cooldown_seconds: int = int(
        os.getenv("OTP_RESEND_COOLDOWN_SECONDS", "0")
    )
    otp_debug: bool = _env_bool("OTP_DEBUG", False)
    verification_ttl_seconds: int = int(os.getenv("VERIFICATION_TTL_SECONDS", "300"))
    require_verified_identifier: bool = _env_bool("REQUIRE_VERIFIED_IDENTIFIER", True)
    auto_provision_accounts: bool = _env_bool("AUTO_PROVISION_ACCOUNTS", True)
    session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "2592000"))
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "sessionToken")
    session_cookie_httponly: bool = _env_bool("SESSION_COOKIE_HTTPONLY", False)
    login_path: str = os.getenv("LOGIN_PATH", "/login")
    dispatch_timeout_seconds: int = int(os.getenv("DISPATCH_TIMEOUT_SECONDS", "10"))
    sms_provider: str = os.getenv("SMS_PROVIDER", "console").strip().lower()
    email_provider: str = os.getenv("EMAIL_PROVIDER", "console").strip().lower()
    brand_name: str = os.getenv("BRAND_NAME", "AesthetX Ways")
    otp_email_sender: str = (
        os.getenv("OTP_EMAIL_SENDER")
        or os.getenv("EMAIL_USER")
        or os.getenv("SMTP_USERNAME", "")
    )
    otp_email_subject: str = os.getenv(
        "OTP_EMAIL_SUBJECT", "Email Verification OTP"
    )
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    twilio_phone_number: str = os.getenv(
        "TWILIO_PHONE_NUMBER", os.getenv("PHONE_NUMBER", "")
    )
    default_country_code: str = os.getenv("DEFAULT_COUNTRY_CODE", "+91")
    smtp_host: str = os.getenv("SMTP_HOST", "smtp.hostinger.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "465"))
    smtp_username: str = os.getenv("SMTP_USERNAME", os.getenv("EMAIL_USER", ""))
    smtp_password: str = os.getenv("SMTP_PASSWORD", os.getenv("EMAIL_PASS", ""))
    smtp_use_ssl: bool = _env_bool("SMTP_USE_SSL", True)
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "http://localhost:3000")
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
