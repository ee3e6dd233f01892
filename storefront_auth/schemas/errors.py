from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None
    errors: Optional[list[str]] = None
    redirect_to: Optional[str] = None
    retry_after_seconds: Optional[int] = None
