from fastapi import APIRouter, Depends

from storefront_auth.config import settings
from storefront_auth.dependencies import get_otp_service
from storefront_auth.schemas.otp import (
    OtpSendRequest,
    OtpSendResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
)
from storefront_auth.services.otp import OtpService

router = APIRouter(prefix="/otp", tags=["otp"])


@router.post("/send", response_model=OtpSendResponse, response_model_exclude_none=True)
def send_otp(
    payload: OtpSendRequest, otp_service: OtpService = Depends(get_otp_service)
) -> OtpSendResponse:
    record = otp_service.send_otp(payload.identifier)
    return OtpSendResponse(
        message="OTP sent successfully",
        expires_in_seconds=otp_service.ttl_seconds,
        otp=record.code if settings.otp_debug else None,
    )


@router.post("/verify", response_model=OtpVerifyResponse)
def verify_otp(
    payload: OtpVerifyRequest, otp_service: OtpService = Depends(get_otp_service)
) -> OtpVerifyResponse:
    otp_service.verify_otp(payload.identifier, payload.code)
    return OtpVerifyResponse(message="OTP verified successfully")
