import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from smb_connect.database.supabase_client import get_supabase
from smb_connect.modules.auth.service import AuthService
from smb_connect.modules.live.session import MemberSession
from smb_connect.realtime.bridge import RealtimeChangeBridge
from smb_connect.realtime.transport import SupabaseRealtimeTransport
from supabase import Client
from typing import Any, Dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])

WS_POLICY_VIOLATION = 1008


def get_change_bridge() -> RealtimeChangeBridge:
    return RealtimeChangeBridge(SupabaseRealtimeTransport())


@router.websocket("/live")
async def live_updates(
    websocket: WebSocket,
    token: str = Query(...),
    supabase: Client = Depends(get_supabase),
    bridge: RealtimeChangeBridge = Depends(get_change_bridge),
):
    """
    Push badge counts and the notification feed as they change.

    Every applied change sends one snapshot message. Clients may send
    {"action": ...} commands (see MemberSession.handle_command); each gets a
    {"action", "ok", "error"} reply.
    """
    try:
        user = AuthService(supabase).get_current_user(token)
    except HTTPException as e:
        await websocket.close(code=WS_POLICY_VIOLATION, reason=e.detail)
        return
    await websocket.accept()

    send_lock = asyncio.Lock()

    async def send(message: Dict[str, Any]) -> None:
        async with send_lock:
            await websocket.send_json(message)

    session = MemberSession(supabase, bridge)
    try:
        await session.switch_user(user["id"])
        await send({"type": "snapshot", **session.snapshot()})
        session.on_change = lambda snapshot: send({"type": "snapshot", **snapshot})
        while True:
            try:
                command = await websocket.receive_json()
            except ValueError:
                await send({"type": "result", "action": None, "ok": False, "error": "invalid JSON"})
                continue
            reply = await session.handle_command(command if isinstance(command, dict) else {})
            await send({"type": "result", **reply})
    except WebSocketDisconnect:
        logger.debug(f"Live connection closed for user {user['id']}")
    finally:
        await session.close()
