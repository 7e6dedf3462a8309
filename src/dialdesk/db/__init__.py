"""Database layer for the DialDesk calling CRM."""

from .repository import Repository, get_repository

__all__ = [
    "Repository",
    "get_repository",
]
