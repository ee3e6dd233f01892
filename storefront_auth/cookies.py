from fastapi import Request, Response

from storefront_auth.config import settings


def is_secure_request(request: Request) -> bool:
    forwarded_proto = request.headers.get("x-forwarded-proto")
    if forwarded_proto:
        return forwarded_proto.split(",")[0].strip().lower() == "https"
    return request.url.scheme == "https"


def read_session_token(request: Request) -> str | None:
    token = request.cookies.get(settings.session_cookie_name)
    if not token or not token.strip():
        return None
    return token.strip()


def set_session_cookie(response: Response, token: str, secure: bool) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        path="/",
        samesite="lax",
        secure=secure,
        httponly=settings.session_cookie_httponly,
    )


def clear_session_cookie(response: Response, secure: bool) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        max_age=0,
        path="/",
        samesite="lax",
        secure=secure,
        httponly=settings.session_cookie_httponly,
    )
