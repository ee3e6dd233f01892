import os
import re
import tempfile
from datetime import datetime, timedelta, timezone

_DB_DIR = tempfile.mkdtemp(prefix="storefront-auth-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SMS_PROVIDER"] = "console"
os.environ["EMAIL_PROVIDER"] = "console"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from storefront_auth.database import Base, engine, init_db  # noqa: E402
from storefront_auth.dependencies import get_otp_service, get_session_issuer  # noqa: E402
from storefront_auth.main import app  # noqa: E402
from storefront_auth.services.dispatch import DispatchReceipt, OtpDispatcher  # noqa: E402
from storefront_auth.services.otp import OtpService, OtpStore, VerificationStore  # noqa: E402
from storefront_auth.services.accounts import AccountStore  # noqa: E402
from storefront_auth.services.sessions import SessionIssuer, SessionStore  # noqa: E402

CODE_PATTERN = re.compile(r"\b(\d{6})\b")


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingChannel:
    def __init__(self) -> None:
        self.messages = []
        self.accept = True

    def send_message(self, destination, body):
        self.messages.append((destination, body))
        return DispatchReceipt(accepted=self.accept, detail=None if self.accept else "rejected")

    def last_code(self) -> str:
        destination, body = self.messages[-1]
        return CODE_PATTERN.search(body).group(1)


@pytest.fixture(autouse=True)
def reset_db():
    init_db()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sms_channel():
    return RecordingChannel()


@pytest.fixture
def email_channel():
    return RecordingChannel()


@pytest.fixture
def otp_service(clock, sms_channel, email_channel):
    return OtpService(
        store=OtpStore(ttl_seconds=300, code_length=6, clock=clock),
        dispatcher=OtpDispatcher(sms_channel=sms_channel, email_channel=email_channel),
        verifications=VerificationStore(ttl_seconds=300, clock=clock),
        max_attempts=5,
        clock=clock,
    )


@pytest.fixture
def session_issuer(clock):
    return SessionIssuer(
        accounts=AccountStore(clock=clock),
        sessions=SessionStore(ttl_seconds=2592000, clock=clock),
        auto_provision=True,
    )


@pytest.fixture
def client(otp_service, session_issuer):
    app.dependency_overrides[get_otp_service] = lambda: otp_service
    app.dependency_overrides[get_session_issuer] = lambda: session_issuer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
