"""
Repository layer initialization module.

The repository pattern keeps SQL out of the service layer: services receive a
repository instance and never touch the session's query API directly.

Usage:
    from usermgmt.repositories import UserRepository
"""

from .base_repository import BaseRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
]
