"""
File metadata model.
"""

from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class File(BaseModel):
    """
    Metadata for one object stored on the WebDAV server.

    ``filename`` is the generated storage name, unique per user;
    ``original_name`` is what the user uploaded.
    """

    __tablename__ = "files"
    __table_args__ = (UniqueConstraint("user_id", "filename", name="uq_files_user_filename"),)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    type = Column(String(100))
    path = Column(String(500), nullable=False)

    # Relationships
    user = relationship("User", back_populates="files")
