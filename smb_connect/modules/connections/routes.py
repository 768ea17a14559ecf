import logging
from fastapi import APIRouter, Depends
from smb_connect.database.supabase_client import get_supabase
from smb_connect.core.dependencies import get_current_member_id, require_member_id
from smb_connect.core.errors import TransientFetchFailure
from smb_connect.modules.connections.schemas import (
    ConnectionCreate, ConnectionResponse, ConnectionStatusResponse, PendingCountResponse
)
from smb_connect.modules.connections.service import ConnectionService, PendingConnectionAggregator
from supabase import Client
from typing import List, Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/connections", tags=["connections"])


def get_pending_aggregator(supabase: Client = Depends(get_supabase)) -> PendingConnectionAggregator:
    return PendingConnectionAggregator(supabase)


def get_connection_service(supabase: Client = Depends(get_supabase)) -> ConnectionService:
    return ConnectionService(supabase)


@router.get("/pending-count", response_model=PendingCountResponse)
async def get_pending_count(
    member_id: Optional[str] = Depends(get_current_member_id),
    service: PendingConnectionAggregator = Depends(get_pending_aggregator)
):
    """Incoming requests awaiting the member's decision (0 without a member profile)"""
    if not member_id:
        return PendingCountResponse(pending_count=0)
    try:
        return PendingCountResponse(pending_count=service.get_pending_count(member_id))
    except TransientFetchFailure as e:
        logger.error(f"Pending connection count unavailable for member {member_id}: {e.detail}")
        return PendingCountResponse(pending_count=0)


@router.get("", response_model=List[ConnectionResponse])
async def list_connections(
    status: Optional[str] = None,
    member_id: Optional[str] = Depends(get_current_member_id),
    service: ConnectionService = Depends(get_connection_service)
):
    """Connections the member sent or received"""
    if not member_id:
        return []
    try:
        return service.list_connections(member_id, status=status)
    except TransientFetchFailure as e:
        logger.error(f"Connections unavailable for member {member_id}: {e.detail}")
        return []


@router.get("/status/{other_member_id}", response_model=ConnectionStatusResponse)
async def get_connection_status(
    other_member_id: str,
    member_id: str = Depends(require_member_id),
    service: ConnectionService = Depends(get_connection_service)
):
    """Connection state between the current member and another member"""
    return service.get_status(member_id, other_member_id)


@router.post("", response_model=ConnectionResponse, status_code=201)
async def send_connection_request(
    request_data: ConnectionCreate,
    member_id: str = Depends(require_member_id),
    service: ConnectionService = Depends(get_connection_service)
):
    """Send a connection request"""
    return service.send_request(member_id, request_data.receiver_id, request_data.message)


@router.post("/{connection_id}/accept", response_model=ConnectionResponse)
async def accept_connection(
    connection_id: str,
    member_id: str = Depends(require_member_id),
    service: ConnectionService = Depends(get_connection_service)
):
    """Accept a pending request addressed to the current member"""
    return service.accept(connection_id, member_id)


@router.post("/{connection_id}/reject", response_model=ConnectionResponse)
async def reject_connection(
    connection_id: str,
    member_id: str = Depends(require_member_id),
    service: ConnectionService = Depends(get_connection_service)
):
    """Reject a pending request addressed to the current member"""
    return service.reject(connection_id, member_id)


@router.delete("/{connection_id}", status_code=204)
async def cancel_connection(
    connection_id: str,
    member_id: str = Depends(require_member_id),
    service: ConnectionService = Depends(get_connection_service)
):
    """Withdraw a request the current member sent"""
    service.cancel(connection_id, member_id)
    return None
