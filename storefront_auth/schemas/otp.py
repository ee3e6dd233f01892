from typing import Optional

from pydantic import BaseModel, Field

from storefront_auth.config import settings

OTP_LENGTH = settings.otp_length


class OtpSendRequest(BaseModel):
    identifier: str = Field(min_length=3, max_length=255)


class OtpSendResponse(BaseModel):
    success: bool = True
    message: str
    expires_in_seconds: int
    otp: Optional[str] = None


class OtpVerifyRequest(BaseModel):
    identifier: str = Field(min_length=3, max_length=255)
    code: str = Field(min_length=OTP_LENGTH, max_length=OTP_LENGTH, pattern=r"^\d+$")


class OtpVerifyResponse(BaseModel):
    success: bool = True
    message: str
