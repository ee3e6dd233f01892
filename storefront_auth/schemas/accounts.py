from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AccountResponse(BaseModel):
    id: int
    email: Optional[str] = None
    phone_number: Optional[str] = None
    name: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None
