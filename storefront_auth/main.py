from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront_auth.config import settings
from storefront_auth.database import init_db
from storefront_auth.dependencies import get_otp_service, get_session_issuer
from storefront_auth.handlers import register_exception_handlers
from storefront_auth.logging_config import configure_logging
from storefront_auth.routers import health, otp, session

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    purged_codes = get_otp_service().purge_expired()
    purged_sessions = get_session_issuer().purge_expired()
    LOGGER.info(
        "Startup purge otp_codes=%s sessions=%s", purged_codes, purged_sessions
    )
    yield


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Storefront Auth", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(otp.router)
    app.include_router(session.router)
    # Compatibility for clients calling /api/* like the storefront's route handlers.
    app.include_router(otp.router, prefix="/api")
    app.include_router(session.router, prefix="/api")
    return app


app = create_app()


@app.get("/")
def root():
    return {"status": "Auth service running"}
