"""
Per-user storage allocation model.
"""

from sqlalchemy import BigInteger, Column, ForeignKey, Integer
from sqlalchemy.orm import relationship

from .base import BaseModel


class StorageAllocation(BaseModel):
    """Byte quota and current usage for a single user."""

    __tablename__ = "storage_allocation"

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    total_space = Column(BigInteger, nullable=False)
    used_space = Column(BigInteger, nullable=False, default=0)

    user = relationship("User", back_populates="storage")
