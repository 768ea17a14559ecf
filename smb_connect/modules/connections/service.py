import logging
from datetime import datetime, timezone
from pydantic import ValidationError
from supabase import Client
from typing import List, Optional, Dict, Any

from smb_connect.core.errors import (
    MutationFailure, TransientFetchFailure, ConnectionNotFound,
    ConnectionAlreadyResponded, ConnectionExists, InvalidConnectionRequest
)
from smb_connect.modules.connections.schemas import ConnectionResponse, ConnectionStatusResponse

logger = logging.getLogger(__name__)


class PendingConnectionAggregator:
    """Incoming connection requests still waiting for the member's decision."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_pending_count(self, member_id: str) -> int:
        try:
            result = self.supabase.table("connections")\
                .select("id", count="exact", head=True)\
                .eq("receiver_id", member_id)\
                .eq("status", "pending")\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching pending connection count for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to count pending connections: {e}") from e
        return result.count or 0


class ConnectionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def find_between(self, member_id: str, other_member_id: str) -> Optional[Dict[str, Any]]:
        """The connection row for the pair, whichever of them sent it."""
        pair = [member_id, other_member_id]
        try:
            result = self.supabase.table("connections")\
                .select("*")\
                .in_("sender_id", pair)\
                .in_("receiver_id", pair)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error looking up connection between {member_id} and {other_member_id}: {e}")
            raise TransientFetchFailure(f"Failed to look up connection: {e}") from e
        return result.data[0] if result.data else None

    def get_status(self, member_id: str, other_member_id: str) -> ConnectionStatusResponse:
        if member_id == other_member_id:
            return ConnectionStatusResponse(status="none")
        connection = self.find_between(member_id, other_member_id)
        if not connection:
            return ConnectionStatusResponse(status="none")
        status = "connected" if connection["status"] == "accepted" else connection["status"]
        return ConnectionStatusResponse(
            status=status,
            connection_id=connection["id"],
            awaiting_my_response=connection["status"] == "pending" and connection["receiver_id"] == member_id,
        )

    def list_connections(self, member_id: str, status: Optional[str] = None) -> List[ConnectionResponse]:
        """All connections the member sent or received, newest first"""
        try:
            query = self.supabase.table("connections")\
                .select("*")\
                .or_(f"sender_id.eq.{member_id},receiver_id.eq.{member_id}")
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.error(f"Error listing connections for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to list connections: {e}") from e
        try:
            return [ConnectionResponse(**row) for row in result.data or []]
        except ValidationError as e:
            logger.error(f"Unreadable connection row for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to read connections: {e.error_count()} invalid field(s)") from e

    def send_request(self, sender_id: str, receiver_id: str, message: Optional[str] = None) -> ConnectionResponse:
        if sender_id == receiver_id:
            raise InvalidConnectionRequest("Cannot connect with yourself")
        if self.find_between(sender_id, receiver_id):
            raise ConnectionExists("A connection already exists between these members")
        try:
            result = self.supabase.table("connections").insert({
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "message": message or None,
                "status": "pending",
            }).execute()
        except Exception as e:
            logger.error(f"Error sending connection request {sender_id} -> {receiver_id}: {e}")
            raise MutationFailure(f"Failed to send connection request: {e}") from e
        if not result.data:
            raise MutationFailure("Failed to send connection request")
        return ConnectionResponse(**result.data[0])

    def accept(self, connection_id: str, member_id: str) -> ConnectionResponse:
        return self._respond(connection_id, member_id, "accepted")

    def reject(self, connection_id: str, member_id: str) -> ConnectionResponse:
        return self._respond(connection_id, member_id, "rejected")

    def cancel(self, connection_id: str, member_id: str) -> bool:
        """Sender withdraws a request that is still pending"""
        try:
            result = self.supabase.table("connections")\
                .delete()\
                .eq("id", connection_id)\
                .eq("sender_id", member_id)\
                .eq("status", "pending")\
                .execute()
        except Exception as e:
            logger.error(f"Error cancelling connection {connection_id}: {e}")
            raise MutationFailure(f"Failed to cancel connection request: {e}") from e
        if result.data:
            return True
        connection = self._get_connection(connection_id)
        if not connection or connection["sender_id"] != member_id:
            raise ConnectionNotFound("Connection request not found")
        raise ConnectionAlreadyResponded(f"Connection request already {connection['status']}")

    def _respond(self, connection_id: str, member_id: str, status: str) -> ConnectionResponse:
        # Only the receiver decides, and only once: the status filter makes the update a no-op on terminal rows
        try:
            result = self.supabase.table("connections")\
                .update({"status": status, "responded_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", connection_id)\
                .eq("receiver_id", member_id)\
                .eq("status", "pending")\
                .execute()
        except Exception as e:
            logger.error(f"Error setting connection {connection_id} to {status}: {e}")
            raise MutationFailure(f"Failed to update connection: {e}") from e
        if result.data:
            logger.info(f"Connection {connection_id} {status} by member {member_id}")
            return ConnectionResponse(**result.data[0])
        connection = self._get_connection(connection_id)
        if not connection or connection["receiver_id"] != member_id:
            raise ConnectionNotFound("Connection request not found")
        raise ConnectionAlreadyResponded(f"Connection request already {connection['status']}")

    def _get_connection(self, connection_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("connections")\
                .select("*")\
                .eq("id", connection_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching connection {connection_id}: {e}")
            raise MutationFailure(f"Failed to load connection: {e}") from e
        if result is None:
            return None
        return result.data
