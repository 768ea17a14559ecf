"""
Core dependencies for authentication and member resolution
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from smb_connect.database.supabase_client import get_supabase
from smb_connect.modules.auth.service import AuthService
from smb_connect.modules.members.service import MemberResolver
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_member_resolver(supabase: Client = Depends(get_supabase)) -> MemberResolver:
    return MemberResolver(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_current_member_id(
    request: Request,
    user_data: Dict[str, Any] = Depends(get_current_user_id),
    resolver: MemberResolver = Depends(get_member_resolver)
) -> Optional[str]:
    """Member id of the caller, or None for accounts without a member profile. Cached per request."""
    if hasattr(request.state, "member_id"):
        return request.state.member_id
    member_id = resolver.resolve(user_data["id"])
    request.state.member_id = member_id
    return member_id


def require_member_id(member_id: Optional[str] = Depends(get_current_member_id)) -> str:
    """Mutations are never attempted without a resolved member id."""
    if not member_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="A member profile is required for this action"
        )
    return member_id
