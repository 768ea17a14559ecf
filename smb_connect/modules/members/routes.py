from fastapi import APIRouter, Depends
from smb_connect.core.dependencies import get_current_user_id, get_current_member_id
from smb_connect.modules.members.schemas import MemberMeResponse
from typing import Dict, Optional

router = APIRouter(prefix="/members", tags=["members"])


@router.get("/me", response_model=MemberMeResponse)
async def get_me(
    current_user: Dict = Depends(get_current_user_id),
    member_id: Optional[str] = Depends(get_current_member_id),
):
    """Current user and their member id (null for accounts without a member profile)."""
    return MemberMeResponse(
        user_id=current_user["id"],
        email=current_user.get("email"),
        member_id=member_id,
    )
