from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime

ConnectionStatus = Literal["pending", "accepted", "rejected"]
PairStatus = Literal["none", "pending", "connected", "rejected"]


class ConnectionCreate(BaseModel):
    receiver_id: str
    message: Optional[str] = None


class ConnectionResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    status: ConnectionStatus
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConnectionStatusResponse(BaseModel):
    status: PairStatus
    connection_id: Optional[str] = None
    # True when the current member is the one who has to accept/reject
    awaiting_my_response: bool = False


class PendingCountResponse(BaseModel):
    pending_count: int = 0
