import hashlib
import logging
import time
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# Badge endpoints and the live socket all present the same token; cache the lookup briefly
_USER_CACHE: Dict[str, tuple] = {}
_USER_CACHE_TTL_SEC = 60
_USER_CACHE_MAX_SIZE = 500


def _cache_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _cached_user(key: str) -> Optional[Dict[str, Any]]:
    entry = _USER_CACHE.get(key)
    if entry is None:
        return None
    user, expires_at = entry
    if time.monotonic() >= expires_at:
        _USER_CACHE.pop(key, None)
        return None
    return user


def _remember_user(key: str, user: Dict[str, Any]) -> None:
    if len(_USER_CACHE) >= _USER_CACHE_MAX_SIZE:
        return
    _USER_CACHE[key] = (user, time.monotonic() + _USER_CACHE_TTL_SEC)


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a Supabase access token to {"id", "email"}; 401 when it is not accepted."""
        key = _cache_key(token)
        user = _cached_user(key)
        if user is not None:
            return user

        try:
            response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.info(f"Token rejected by Supabase Auth: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        if not response or not response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user = {"id": response.user.id, "email": response.user.email}
        _remember_user(key, user)
        return user


def clear_auth_cache() -> None:
    _USER_CACHE.clear()
