from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from storefront_auth.clock import Clock, utcnow
from storefront_auth.database import session_scope
from storefront_auth.errors import AccountNotFound
from storefront_auth.models.account import AccountEntry
from storefront_auth.schemas.accounts import AccountResponse
from storefront_auth.services.identifiers import Identifier


def _lookup_column(identifier: Identifier):
    return AccountEntry.email if identifier.is_email else AccountEntry.phone_number


class AccountStore:
    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock

    def find(self, identifier: Identifier) -> AccountResponse | None:
        with session_scope() as session:
            entry = session.execute(
                select(AccountEntry).where(_lookup_column(identifier) == identifier.value)
            ).scalar_one_or_none()
            if entry is None:
                return None
            return self._to_response(entry)

    def find_or_create(
        self, identifier: Identifier, auto_provision: bool = True
    ) -> tuple[AccountResponse, bool]:
        existing = self.find(identifier)
        if existing is not None:
            return existing, False
        if not auto_provision:
            raise AccountNotFound()

        now = self._clock()
        try:
            with session_scope() as session:
                entry = AccountEntry(
                    email=identifier.value if identifier.is_email else None,
                    phone_number=None if identifier.is_email else identifier.value,
                    name=None,
                    created_at=now,
                    updated_at=now,
                    last_login_at=None,
                )
                session.add(entry)
                session.flush()
                return self._to_response(entry), True
        except IntegrityError:
            # Lost a concurrent signup race for the same identifier.
            existing = self.find(identifier)
            if existing is None:
                raise
            return existing, False

    def get(self, account_id: int) -> AccountResponse | None:
        with session_scope() as session:
            entry = session.get(AccountEntry, account_id)
            if entry is None:
                return None
            return self._to_response(entry)

    def touch_last_login(self, account_id: int) -> None:
        now = self._clock()
        with session_scope() as session:
            entry = session.get(AccountEntry, account_id)
            if entry is not None:
                entry.last_login_at = now
                entry.updated_at = now

    def _to_response(self, entry: AccountEntry) -> AccountResponse:
        return AccountResponse(
            id=entry.id,
            email=entry.email,
            phone_number=entry.phone_number,
            name=entry.name,
            created_at=entry.created_at,
            last_login_at=entry.last_login_at,
        )
