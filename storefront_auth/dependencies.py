from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Request

from storefront_auth.cookies import read_session_token
from storefront_auth.errors import NotAuthenticated
from storefront_auth.models.session import SessionEntry
from storefront_auth.schemas.accounts import AccountResponse
from storefront_auth.services.dispatch import build_dispatcher
from storefront_auth.services.otp import OtpService, build_otp_service
from storefront_auth.services.sessions import SessionIssuer, build_session_issuer


@lru_cache
def get_otp_service() -> OtpService:
    return build_otp_service(build_dispatcher())


@lru_cache
def get_session_issuer() -> SessionIssuer:
    return build_session_issuer()


@dataclass(frozen=True)
class SessionContext:
    token: str
    session: SessionEntry
    account: AccountResponse


def get_session_context(
    request: Request, issuer: SessionIssuer = Depends(get_session_issuer)
) -> SessionContext | None:
    """Resolve the ``sessionToken`` cookie once per request; ``None`` when anonymous."""
    token = read_session_token(request)
    if token is None:
        return None
    resolved = issuer.resolve(token)
    if resolved is None:
        return None
    session, account = resolved
    return SessionContext(token=token, session=session, account=account)


def require_session(
    context: SessionContext | None = Depends(get_session_context),
) -> SessionContext:
    if context is None:
        raise NotAuthenticated()
    return context
