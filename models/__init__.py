"""
Models package initialization.
"""

from .activity import Activity, Notification
from .base import Base, BaseModel, utcnow
from .file import File
from .storage import StorageAllocation
from .team import Team, TeamMember
from .user import User

__all__ = [
    "Base",
    "BaseModel",
    "utcnow",
    "User",
    "File",
    "StorageAllocation",
    "Activity",
    "Notification",
    "Team",
    "TeamMember",
]
