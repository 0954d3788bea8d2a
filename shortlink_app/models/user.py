import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shortlink_app.database.connection import Base, utcnow


class User(Base):
    """Account that owns shortened URLs. Password holds a bcrypt hash."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    urls = relationship(
        "URL",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
