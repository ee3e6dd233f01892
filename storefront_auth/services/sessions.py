from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import secrets

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from storefront_auth.clock import Clock, as_utc, utcnow
from storefront_auth.config import settings
from storefront_auth.database import session_scope
from storefront_auth.errors import SessionCreationFailure
from storefront_auth.models.session import SessionEntry
from storefront_auth.schemas.accounts import AccountResponse
from storefront_auth.services.accounts import AccountStore
from storefront_auth.services.identifiers import normalize_identifier

LOGGER = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass(frozen=True)
class IssuedSession:
    token: str
    account: AccountResponse
    created_at: datetime
    expires_at: datetime
    account_created: bool


class SessionStore:
    def __init__(self, ttl_seconds: int, clock: Clock = utcnow) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def create_session(self, account_id: int) -> SessionEntry:
        now = self._clock()
        entry = SessionEntry(
            token=secrets.token_urlsafe(TOKEN_BYTES),
            account_id=account_id,
            created_at=now,
            expires_at=now + timedelta(seconds=self._ttl_seconds),
            revoked_at=None,
        )
        with session_scope() as session:
            session.execute(delete(SessionEntry).where(SessionEntry.expires_at <= now))
            session.add(entry)
        return entry

    def resolve(self, token: str) -> SessionEntry | None:
        if not token:
            return None
        now = self._clock()
        with session_scope() as session:
            entry = session.execute(
                select(SessionEntry).where(SessionEntry.token == token)
            ).scalar_one_or_none()
            if entry is None or entry.revoked_at is not None:
                return None
            if as_utc(entry.expires_at) <= now:
                session.delete(entry)
                return None
            return entry

    def revoke_session(self, token: str) -> bool:
        now = self._clock()
        with session_scope() as session:
            result = session.execute(
                update(SessionEntry)
                .where(SessionEntry.token == token, SessionEntry.revoked_at.is_(None))
                .values(revoked_at=now)
            )
            return result.rowcount > 0

    def revoke_account_sessions(self, account_id: int) -> int:
        now = self._clock()
        with session_scope() as session:
            result = session.execute(
                update(SessionEntry)
                .where(
                    SessionEntry.account_id == account_id,
                    SessionEntry.revoked_at.is_(None),
                )
                .values(revoked_at=now)
            )
            return result.rowcount

    def purge_expired(self) -> int:
        now = self._clock()
        with session_scope() as session:
            result = session.execute(
                delete(SessionEntry).where(SessionEntry.expires_at <= now)
            )
            return result.rowcount


class SessionIssuer:
    """Turns a verified identifier into a signed-in session.

    Callers are trusted to have verified the identifier already; nothing here
    looks at OTP state.
    """

    def __init__(
        self, accounts: AccountStore, sessions: SessionStore, auto_provision: bool = True
    ) -> None:
        self._accounts = accounts
        self._sessions = sessions
        self._auto_provision = auto_provision

    def create_session(self, raw_identifier: str) -> IssuedSession:
        identifier = normalize_identifier(raw_identifier)
        account, created = self._accounts.find_or_create(
            identifier, auto_provision=self._auto_provision
        )
        try:
            entry = self._sessions.create_session(account.id)
            self._accounts.touch_last_login(account.id)
        except SQLAlchemyError as exc:
            LOGGER.exception("Session persistence failed account_id=%s", account.id)
            raise SessionCreationFailure() from exc
        if created:
            LOGGER.info("Account provisioned account_id=%s kind=%s", account.id, identifier.kind)
        LOGGER.info("Session issued account_id=%s", account.id)
        return IssuedSession(
            token=entry.token,
            account=account,
            created_at=as_utc(entry.created_at),
            expires_at=as_utc(entry.expires_at),
            account_created=created,
        )

    def resolve(self, token: str) -> tuple[SessionEntry, AccountResponse] | None:
        entry = self._sessions.resolve(token)
        if entry is None:
            return None
        account = self._accounts.get(entry.account_id)
        if account is None:
            return None
        return entry, account

    def destroy_session(self, token: str) -> bool:
        revoked = self._sessions.revoke_session(token)
        if revoked:
            LOGGER.info("Session revoked")
        return revoked

    def purge_expired(self) -> int:
        return self._sessions.purge_expired()

    def destroy_account_sessions(self, account_id: int) -> int:
        revoked = self._sessions.revoke_account_sessions(account_id)
        LOGGER.info("Sessions revoked account_id=%s count=%s", account_id, revoked)
        return revoked


def build_session_issuer(clock: Clock = utcnow) -> SessionIssuer:
    return SessionIssuer(
        accounts=AccountStore(clock=clock),
        sessions=SessionStore(settings.session_ttl_seconds, clock=clock),
        auto_provision=settings.auto_provision_accounts,
    )
