# ruff: noqa: F403, F401
"""Schemas package initialization."""

from .base import *
from .file import *
from .notification import *
from .team import *
from .user import *
