import logging
from pydantic import BaseModel, ValidationError, field_validator
from typing import Optional, List, Literal, Union, Dict, Any, Type
from datetime import datetime

logger = logging.getLogger(__name__)

CONNECTIONS_LINK = "/connections"


class NotificationBase(BaseModel):
    id: str
    member_id: str
    title: str
    message: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    @field_validator("is_read", mode="before")
    @classmethod
    def null_is_unread(cls, value: Any) -> Any:
        return False if value is None else value


class ConnectionRequestNotification(NotificationBase):
    type: Literal["connection_request"] = "connection_request"
    link: str = CONNECTIONS_LINK


class ConnectionAcceptedNotification(NotificationBase):
    type: Literal["connection_accepted"] = "connection_accepted"
    link: str = CONNECTIONS_LINK


class PostLikeNotification(NotificationBase):
    type: Literal["post_like"] = "post_like"
    link: str


class PostCommentNotification(NotificationBase):
    type: Literal["post_comment"] = "post_comment"
    link: str


class GenericNotification(NotificationBase):
    type: str
    link: Optional[str] = None


Notification = Union[
    ConnectionRequestNotification,
    ConnectionAcceptedNotification,
    PostLikeNotification,
    PostCommentNotification,
    GenericNotification,
]

NOTIFICATION_TYPES: Dict[str, Type[NotificationBase]] = {
    "connection_request": ConnectionRequestNotification,
    "connection_accepted": ConnectionAcceptedNotification,
    "post_like": PostLikeNotification,
    "post_comment": PostCommentNotification,
}


def parse_notification(row: Dict[str, Any]) -> Notification:
    """Build the variant matching row["type"]; rows that don't fit it fall back to GenericNotification."""
    data = dict(row)
    if data.get("link") is None:
        data.pop("link", None)
    model = NOTIFICATION_TYPES.get(row.get("type"))
    if model is None:
        return GenericNotification(**row)
    try:
        return model(**data)
    except ValidationError as e:
        logger.warning(f"Notification {row.get('id')} does not match type {row.get('type')}: {e.error_count()} error(s)")
        return GenericNotification(**row)


class NotificationListResponse(BaseModel):
    notifications: List[Notification] = []
    unread_count: int = 0


class MarkReadResponse(BaseModel):
    updated: int = 0
    unread_count: int = 0
