import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shortlink_app.database.connection import Base, utcnow


class URL(Base):
    """
    Shortened URL owned by a user.

    short_code is unique across ALL users; the unique index is what finally
    guarantees it when two requests pick the same candidate concurrently.
    clicks only ever changes through an atomic ``clicks = clicks + 1`` update.
    """
    __tablename__ = "urls"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_url = Column(Text, nullable=False)
    short_code = Column(String(16), unique=True, nullable=False, index=True)
    clicks = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="urls")
    click_events = relationship(
        "ClickEvent",
        back_populates="url",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
