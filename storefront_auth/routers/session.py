from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from storefront_auth.config import settings
from storefront_auth.cookies import (
    clear_session_cookie,
    is_secure_request,
    read_session_token,
    set_session_cookie,
)
from storefront_auth.dependencies import (
    SessionContext,
    get_otp_service,
    get_session_issuer,
    require_session,
)
from storefront_auth.errors import AuthError, VerificationRequired
from storefront_auth.schemas.session import (
    SessionCreateRequest,
    SessionCreateResponse,
    SessionDestroyAllResponse,
    SessionDestroyRequest,
    SessionDestroyResponse,
    SessionMeResponse,
)
from storefront_auth.services.otp import OtpService
from storefront_auth.services.sessions import SessionIssuer

router = APIRouter(prefix="/session", tags=["session"])


@router.post("/create", response_model=SessionCreateResponse)
def create_session(
    payload: SessionCreateRequest,
    request: Request,
    response: Response,
    otp_service: OtpService = Depends(get_otp_service),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> SessionCreateResponse:
    verified = settings.require_verified_identifier
    if verified and not otp_service.consume_verification(payload.identifier):
        raise VerificationRequired()
    try:
        issued = issuer.create_session(payload.identifier)
    except AuthError:
        if verified:
            otp_service.restore_verification(payload.identifier)
        raise
    set_session_cookie(response, issued.token, secure=is_secure_request(request))
    return SessionCreateResponse(
        message="Signed in successfully",
        session_token=issued.token,
        account_created=issued.account_created,
        expires_in_seconds=settings.session_ttl_seconds,
    )


@router.post("/destroy", response_model=SessionDestroyResponse)
def destroy_session(
    request: Request,
    response: Response,
    payload: Optional[SessionDestroyRequest] = None,
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> SessionDestroyResponse:
    token = payload.session_token if payload and payload.session_token else None
    token = token or read_session_token(request)
    if token:
        issuer.destroy_session(token)
    clear_session_cookie(response, secure=is_secure_request(request))
    return SessionDestroyResponse()


@router.post("/destroy-all", response_model=SessionDestroyAllResponse)
def destroy_all_sessions(
    request: Request,
    response: Response,
    context: SessionContext = Depends(require_session),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> SessionDestroyAllResponse:
    revoked = issuer.destroy_account_sessions(context.account.id)
    clear_session_cookie(response, secure=is_secure_request(request))
    return SessionDestroyAllResponse(revoked=revoked)


@router.get("/me", response_model=SessionMeResponse)
def get_me(context: SessionContext = Depends(require_session)) -> SessionMeResponse:
    return SessionMeResponse(account=context.account)
