"""
Provides the User model for the application's database schema.

Attributes
----------
username : sqlalchemy.Column
    Unique display name chosen at registration.
email : sqlalchemy.Column
    Unique login email.
password_hash : sqlalchemy.Column
    bcrypt hash, stored in the ``password`` column.

Relationships
-------------
files, storage, notifications, activities
    Owned rows, removed together with the user.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """
    Represents a user account.

    :ivar username: Unique username.
    :type username: str
    :ivar email: Unique email address.
    :type email: str
    :ivar password_hash: Salted bcrypt hash of the password.
    :type password_hash: str
    """

    __tablename__ = "users"

    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column("password", String(255), nullable=False)

    # Relationships
    files = relationship("File", back_populates="user", cascade="all, delete-orphan")
    storage = relationship(
        "StorageAllocation", back_populates="user", cascade="all, delete-orphan", uselist=False
    )
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )
    activities = relationship("Activity", back_populates="user", cascade="all, delete-orphan")
