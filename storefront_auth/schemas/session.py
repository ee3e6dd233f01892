from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront_auth.schemas.accounts import AccountResponse


class SessionCreateRequest(BaseModel):
    identifier: str = Field(min_length=3, max_length=255)


class SessionCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    session_token: str = Field(serialization_alias="sessionToken")
    account_created: bool = Field(serialization_alias="accountCreated")
    expires_in_seconds: int


class SessionDestroyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_token: Optional[str] = Field(
        default=None, alias="sessionToken", max_length=256
    )


class SessionDestroyResponse(BaseModel):
    success: bool = True


class SessionDestroyAllResponse(BaseModel):
    success: bool = True
    revoked: int


class SessionMeResponse(BaseModel):
    success: bool = True
    account: AccountResponse
