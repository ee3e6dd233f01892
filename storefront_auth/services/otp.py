from dataclasses import dataclass
from datetime import datetime, timedelta
import hashlib
import hmac
import logging
import math
import secrets

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite

from storefront_auth.clock import Clock, as_utc, utcnow
from storefront_auth.config import settings
from storefront_auth.database import engine, session_scope
from storefront_auth.errors import (
    CodeMismatch,
    DispatchFailure,
    NotFoundOrExpired,
    ResendCooldown,
    TooManyAttempts,
)
from storefront_auth.models.otp import OtpEntry
from storefront_auth.models.verification import VerificationEntry
from storefront_auth.services.dispatch import OtpDispatcher, render_otp_message
from storefront_auth.services.identifiers import normalize_identifier

LOGGER = logging.getLogger(__name__)

_UPSERT_DIALECTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


@dataclass(frozen=True)
class OtpRecord:
    identifier: str
    code: str
    created_at: datetime
    expires_at: datetime


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


class OtpStore:
    """One live code per identifier; writing a new code replaces the old one."""

    def __init__(self, ttl_seconds: int, code_length: int, clock: Clock = utcnow) -> None:
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def upsert(self, identifier: str) -> OtpRecord:
        now = self._clock()
        record = OtpRecord(
            identifier=identifier,
            code=self._generate_code(),
            created_at=now,
            expires_at=now + timedelta(seconds=self._ttl_seconds),
        )
        values = {
            "identifier": identifier,
            "code_hash": hash_code(record.code),
            "attempts": 0,
            "created_at": record.created_at,
            "expires_at": record.expires_at,
        }

        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.expires_at < now))
            insert = _UPSERT_DIALECTS.get(engine.dialect.name)
            if insert is not None:
                statement = insert(OtpEntry).values(**values)
                session.execute(
                    statement.on_conflict_do_update(
                        index_elements=[OtpEntry.identifier],
                        set_={
                            key: statement.excluded[key]
                            for key in ("code_hash", "attempts", "created_at", "expires_at")
                        },
                    )
                )
            else:
                session.execute(delete(OtpEntry).where(OtpEntry.identifier == identifier))
                session.add(OtpEntry(**values))
        return record

    def discard(self, identifier: str) -> None:
        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.identifier == identifier))

    def last_sent_at(self, identifier: str) -> datetime | None:
        now = self._clock()
        with session_scope() as session:
            entry = session.execute(
                select(OtpEntry).where(OtpEntry.identifier == identifier)
            ).scalar_one_or_none()
            if entry is None or as_utc(entry.expires_at) < now:
                return None
            return as_utc(entry.created_at)

    def check(self, identifier: str, code: str, max_attempts: int) -> None:
        """Consume the live code for ``identifier`` or raise why it can't be.

        A wrong guess is counted against the record; the record is dropped
        once it expires, runs out of attempts or is matched.
        """
        now = self._clock()
        clean_code = code.strip()
        with session_scope() as session:
            entry = session.execute(
                select(OtpEntry)
                .where(OtpEntry.identifier == identifier)
                .with_for_update()
            ).scalar_one_or_none()
            if entry is None:
                raise NotFoundOrExpired()
            if now > as_utc(entry.expires_at):
                session.delete(entry)
                session.commit()
                raise NotFoundOrExpired("OTP has expired. Please request a new one.")
            if entry.attempts >= max_attempts:
                session.delete(entry)
                session.commit()
                raise TooManyAttempts()
            if not hmac.compare_digest(entry.code_hash, hash_code(clean_code)):
                entry.attempts += 1
                if entry.attempts >= max_attempts:
                    session.delete(entry)
                    session.commit()
                    raise TooManyAttempts()
                remaining = max_attempts - entry.attempts
                session.commit()
                raise CodeMismatch(
                    f"Invalid OTP. Please check and try again. {remaining} attempt(s) left."
                )
            session.delete(entry)

    def purge_expired(self) -> int:
        now = self._clock()
        with session_scope() as session:
            result = session.execute(delete(OtpEntry).where(OtpEntry.expires_at < now))
            return result.rowcount

    def _generate_code(self) -> str:
        lower = 10 ** (self._code_length - 1)
        return str(lower + secrets.randbelow(9 * lower))


class VerificationStore:
    """Short-lived proof that an identifier just passed OTP verification."""

    def __init__(self, ttl_seconds: int, clock: Clock = utcnow) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def grant(self, identifier: str) -> None:
        now = self._clock()
        with session_scope() as session:
            session.execute(
                delete(VerificationEntry).where(
                    (VerificationEntry.expires_at < now)
                    | (VerificationEntry.identifier == identifier)
                )
            )
            session.add(
                VerificationEntry(
                    identifier=identifier,
                    verified_at=now,
                    expires_at=now + timedelta(seconds=self._ttl_seconds),
                )
            )

    def consume(self, identifier: str) -> bool:
        now = self._clock()
        with session_scope() as session:
            entry = session.execute(
                select(VerificationEntry)
                .where(VerificationEntry.identifier == identifier)
                .with_for_update()
            ).scalar_one_or_none()
            if entry is None:
                return False
            session.delete(entry)
            return as_utc(entry.expires_at) >= now

    def purge_expired(self) -> int:
        now = self._clock()
        with session_scope() as session:
            result = session.execute(
                delete(VerificationEntry).where(VerificationEntry.expires_at < now)
            )
            return result.rowcount


class OtpService:
    def __init__(
        self,
        store: OtpStore,
        dispatcher: OtpDispatcher,
        verifications: VerificationStore,
        max_attempts: int,
        resend_cooldown_seconds: int = 0,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._verifications = verifications
        self._max_attempts = max_attempts
        self._resend_cooldown_seconds = resend_cooldown_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._store.ttl_seconds

    def send_otp(self, raw_identifier: str) -> OtpRecord:
        identifier = normalize_identifier(raw_identifier)
        self._enforce_cooldown(identifier.value)

        record = self._store.upsert(identifier.value)
        body = render_otp_message(record.code, self._store.ttl_seconds)
        try:
            receipt = self._dispatcher.send(identifier, body)
        except Exception as exc:
            LOGGER.exception("OTP dispatch crashed kind=%s", identifier.kind)
            self._store.discard(identifier.value)
            raise DispatchFailure() from exc
        if not receipt.accepted:
            self._store.discard(identifier.value)
            raise DispatchFailure()
        LOGGER.info("OTP sent kind=%s identifier=%s", identifier.kind, identifier.value)
        return record

    def verify_otp(self, raw_identifier: str, code: str) -> str:
        identifier = normalize_identifier(raw_identifier)
        try:
            self._store.check(identifier.value, code, self._max_attempts)
        except (CodeMismatch, TooManyAttempts, NotFoundOrExpired) as exc:
            LOGGER.warning(
                "OTP rejected identifier=%s reason=%s", identifier.value, exc.kind.value
            )
            raise
        self._verifications.grant(identifier.value)
        LOGGER.info("OTP verified identifier=%s", identifier.value)
        return identifier.value

    def consume_verification(self, raw_identifier: str) -> bool:
        identifier = normalize_identifier(raw_identifier)
        return self._verifications.consume(identifier.value)

    def restore_verification(self, raw_identifier: str) -> None:
        """Hand back a consumed grant when the sign-in it was spent on failed."""
        identifier = normalize_identifier(raw_identifier)
        self._verifications.grant(identifier.value)

    def purge_expired(self) -> int:
        return self._store.purge_expired() + self._verifications.purge_expired()

    def _enforce_cooldown(self, identifier: str) -> None:
        if self._resend_cooldown_seconds <= 0:
            return
        last_sent_at = self._store.last_sent_at(identifier)
        if last_sent_at is None:
            return
        elapsed = (self._clock() - last_sent_at).total_seconds()
        if elapsed < self._resend_cooldown_seconds:
            raise ResendCooldown(math.ceil(self._resend_cooldown_seconds - elapsed))


def build_otp_service(dispatcher: OtpDispatcher, clock: Clock = utcnow) -> OtpService:
    return OtpService(
        store=OtpStore(settings.otp_ttl_seconds, settings.otp_length, clock=clock),
        dispatcher=dispatcher,
        verifications=VerificationStore(settings.verification_ttl_seconds, clock=clock),
        max_attempts=settings.otp_max_attempts,
        resend_cooldown_seconds=settings.otp_resend_cooldown_seconds,
        clock=clock,
    )
