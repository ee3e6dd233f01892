import pytest
from sqlalchemy import select

from storefront_auth.database import session_scope
from storefront_auth.errors import (
    CodeMismatch,
    DispatchFailure,
    InvalidIdentifier,
    NotFoundOrExpired,
    ResendCooldown,
    TooManyAttempts,
)
from storefront_auth.models.otp import OtpEntry
from storefront_auth.services.dispatch import OtpDispatcher
from storefront_auth.services.otp import OtpService, OtpStore, VerificationStore, hash_code


def _entries():
    with session_scope() as session:
        return session.execute(select(OtpEntry)).scalars().all()


def test_send_then_verify_is_single_use(otp_service, sms_channel):
    otp_service.send_otp("+911234567890")
    code = sms_channel.last_code()

    assert otp_service.verify_otp("+911234567890", code) == "+911234567890"
    with pytest.raises((NotFoundOrExpired, CodeMismatch)):
        otp_service.verify_otp("+911234567890", code)


def test_code_is_six_digits_and_stored_hashed(otp_service, email_channel):
    record = otp_service.send_otp("user@example.com")

    assert len(record.code) == 6
    assert 100000 <= int(record.code) <= 999999
    assert email_channel.messages[-1][0] == "user@example.com"
    (entry,) = _entries()
    assert entry.code_hash == hash_code(record.code)
    assert record.code not in entry.code_hash


def test_second_send_supersedes_first(otp_service, sms_channel):
    first = otp_service.send_otp("+911234567890").code
    second = otp_service.send_otp("+911234567890").code
    if first == second:
        pytest.skip("codes collided")

    with pytest.raises(CodeMismatch):
        otp_service.verify_otp("+911234567890", first)
    otp_service.verify_otp("+911234567890", second)
    assert len(_entries()) == 0


def test_expired_code_fails_and_is_dropped(otp_service, email_channel, clock):
    otp_service.send_otp("user@example.com")
    code = email_channel.last_code()
    clock.advance(5 * 60 + 1)

    with pytest.raises(NotFoundOrExpired) as exc_info:
        otp_service.verify_otp("user@example.com", code)
    assert "expired" in exc_info.value.message.lower()
    assert _entries() == []


def test_code_still_valid_at_the_last_second(otp_service, email_channel, clock):
    otp_service.send_otp("user@example.com")
    clock.advance(300)
    otp_service.verify_otp("user@example.com", email_channel.last_code())


def test_verify_without_send_is_not_found(otp_service):
    with pytest.raises(NotFoundOrExpired) as exc_info:
        otp_service.verify_otp("never@example.com", "123456")
    assert exc_info.value.kind.value == "not_found_or_expired"


def test_identifiers_are_isolated(otp_service, email_channel):
    otp_service.send_otp("a@example.com")
    code_a = email_channel.last_code()
    otp_service.send_otp("b@example.com")
    code_b = email_channel.last_code()

    otp_service.verify_otp("b@example.com", code_b)
    otp_service.verify_otp("a@example.com", code_a)


def test_identifier_is_normalized_between_send_and_verify(otp_service, email_channel):
    otp_service.send_otp("User@Example.com")
    otp_service.verify_otp("user@example.com ", email_channel.last_code())


def test_attempts_are_bounded(otp_service, sms_channel):
    otp_service.send_otp("9876543210")
    code = sms_channel.last_code()
    wrong = "000000" if code != "000000" else "111111"

    for remaining in (4, 3, 2, 1):
        with pytest.raises(CodeMismatch) as exc_info:
            otp_service.verify_otp("9876543210", wrong)
        assert f"{remaining} attempt(s) left" in exc_info.value.message
    with pytest.raises(TooManyAttempts):
        otp_service.verify_otp("9876543210", wrong)
    with pytest.raises(NotFoundOrExpired):
        otp_service.verify_otp("9876543210", code)


def test_dispatch_failure_leaves_no_usable_record(otp_service, sms_channel):
    sms_channel.accept = False

    with pytest.raises(DispatchFailure):
        otp_service.send_otp("+911234567890")
    assert _entries() == []


def test_invalid_identifier_never_reaches_dispatch(otp_service, sms_channel, email_channel):
    with pytest.raises(InvalidIdentifier):
        otp_service.send_otp("not-a-phone")
    assert sms_channel.messages == []
    assert email_channel.messages == []


def test_resend_cooldown(clock, sms_channel, email_channel):
    service = OtpService(
        store=OtpStore(ttl_seconds=300, code_length=6, clock=clock),
        dispatcher=OtpDispatcher(sms_channel=sms_channel, email_channel=email_channel),
        verifications=VerificationStore(ttl_seconds=300, clock=clock),
        max_attempts=5,
        resend_cooldown_seconds=30,
        clock=clock,
    )
    service.send_otp("+911234567890")
    clock.advance(10)
    with pytest.raises(ResendCooldown) as exc_info:
        service.send_otp("+911234567890")
    assert exc_info.value.retry_after_seconds == 20

    clock.advance(20)
    service.send_otp("+911234567890")
    assert len(sms_channel.messages) == 2


def test_verification_grant_is_consumed_once(otp_service, email_channel, clock):
    otp_service.send_otp("user@example.com")
    otp_service.verify_otp("user@example.com", email_channel.last_code())

    assert otp_service.consume_verification("USER@example.com") is True
    assert otp_service.consume_verification("user@example.com") is False


def test_verification_grant_expires(otp_service, email_channel, clock):
    otp_service.send_otp("user@example.com")
    otp_service.verify_otp("user@example.com", email_channel.last_code())
    clock.advance(301)

    assert otp_service.consume_verification("user@example.com") is False


def test_purge_expired(otp_service, clock):
    otp_service.send_otp("a@example.com")
    otp_service.send_otp("+911234567890")
    clock.advance(301)

    assert otp_service.purge_expired() == 2
    assert _entries() == []


class _CrashingChannel:
    def send_message(self, destination, body):
        raise ValueError("corrupt token file")


def test_unexpected_channel_error_rolls_back_record(clock, email_channel):
    service = OtpService(
        store=OtpStore(ttl_seconds=300, code_length=6, clock=clock),
        dispatcher=OtpDispatcher(sms_channel=_CrashingChannel(), email_channel=email_channel),
        verifications=VerificationStore(ttl_seconds=300, clock=clock),
        max_attempts=5,
        clock=clock,
    )

    with pytest.raises(DispatchFailure):
        service.send_otp("+911234567890")
    assert _entries() == []


def test_code_at_its_expiry_instant_survives_other_sends(otp_service, email_channel, clock):
    otp_service.send_otp("a@example.com")
    code_a = email_channel.last_code()
    clock.advance(300)

    otp_service.send_otp("b@example.com")
    assert otp_service.purge_expired() == 0
    otp_service.verify_otp("a@example.com", code_a)


def test_restored_verification_can_be_consumed_again(otp_service, email_channel):
    otp_service.send_otp("user@example.com")
    otp_service.verify_otp("user@example.com", email_channel.last_code())
    assert otp_service.consume_verification("user@example.com") is True

    otp_service.restore_verification("user@example.com")
    assert otp_service.consume_verification("user@example.com") is True
