import asyncio
from supabase import create_client, acreate_client, Client, AsyncClient
from smb_connect.config.settings import settings


class SupabaseClient:
    _client: Client = None
    _async_client: AsyncClient = None
    _async_lock: asyncio.Lock = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    async def get_async_client(cls) -> AsyncClient:
        """Async client backing realtime channels. Prefers the service_role key; bypasses RLS."""
        if cls._async_lock is None:
            cls._async_lock = asyncio.Lock()
        async with cls._async_lock:
            if cls._async_client is None:
                key = settings.supabase_service_role_key or settings.supabase_key
                cls._async_client = await acreate_client(settings.supabase_url, key)
        return cls._async_client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._async_client = None
        cls._async_lock = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()
