from datetime import datetime
from enum import Enum

from pydantic import Field

from shortlink_app.schemas.auth import CamelModel


class LiveControlEvent(str, Enum):
    JOIN = "join-user-room"
    LEAVE = "leave-user-room"


class LiveControlMessage(CamelModel):
    """Client-to-server message on the live channel"""
    event: LiveControlEvent
    user_id: str = Field(..., min_length=1)


class ClickUpdate(CamelModel):
    """Payload of a url-clicked event"""
    url_id: str
    clicks: int
    timestamp: datetime
