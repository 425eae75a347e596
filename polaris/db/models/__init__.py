"""
SQLAlchemy declarative base and entity contract.

Applications declare their models on ``Base``; the package ships no domain
tables of its own.
"""

from .base import Base, EntityModel, RepositoryModel, now_utc  # re-export

__all__ = [
    "Base",
    "EntityModel",
    "RepositoryModel",
    "now_utc",
]
