"""
Activity log and notification models.
"""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Activity(BaseModel):
    """Append-only audit entry. ``details`` maps to the ``metadata`` column."""

    __tablename__ = "activities"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(255), nullable=False)
    details = Column("metadata", JSON)

    user = relationship("User", back_populates="activities")


class Notification(BaseModel):
    """User-facing notification with a read flag."""

    __tablename__ = "notifications"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="info")
    category = Column(String(50), nullable=False, default="general")
    read = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="notifications")
