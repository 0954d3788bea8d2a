from datetime import datetime
from typing import List, Optional

from pydantic import Field, computed_field

from shortlink_app.config import settings
from shortlink_app.schemas.auth import CamelModel


class URLCreate(CamelModel):
    original_url: str = Field(..., min_length=1, max_length=2048, description="The URL to shorten")


class URLResponse(CamelModel):
    """Serializes the SQLAlchemy URL model; short_url is derived from the code"""
    id: str
    original_url: str
    short_code: str
    clicks: int
    created_at: datetime

    @computed_field(alias="shortUrl")
    @property
    def short_url(self) -> str:
        return f"{settings.base_url.rstrip('/')}/{self.short_code}"


class MessageResponse(CamelModel):
    message: str


class ReferrerCount(CamelModel):
    referrer: str
    clicks: int


class VisitResponse(CamelModel):
    id: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: str
    timestamp: datetime


class URLAnalytics(CamelModel):
    url_id: str
    total_clicks: int
    unique_visitors: int
    top_referrers: List[ReferrerCount] = Field(default_factory=list)
    recent_visits: List[VisitResponse] = Field(default_factory=list)
