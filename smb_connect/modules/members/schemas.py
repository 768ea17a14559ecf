from pydantic import BaseModel
from typing import Optional


class MemberMeResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    member_id: Optional[str] = None  # None when the account has no member profile
