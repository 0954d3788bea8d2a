from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shortlink_app.database.connection import Base, utcnow


# Stored when a visit carries no Referer header
DIRECT_REFERRER = "direct"


class ClickEvent(Base):
    """One row per redirect. Append-only, removed only with its URL."""
    __tablename__ = "analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url_id = Column(
        String(36),
        ForeignKey("urls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=False, default=DIRECT_REFERRER)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    url = relationship("URL", back_populates="click_events")
