"""
polaris: a fluent repository layer over SQLAlchemy.
"""

from polaris.db.context import RepositoryContext
from polaris.db.models import Base, EntityModel, RepositoryModel
from polaris.db.pagination import Page
from polaris.db.repositories import Repository, RepositoryInterface
from polaris.exceptions import (
    ConfigurationError,
    MethodNotFoundError,
    RepositoryError,
    TypeMismatchError,
)

__version__ = "0.1.0"

__all__ = [
    "Base",
    "ConfigurationError",
    "EntityModel",
    "MethodNotFoundError",
    "Page",
    "Repository",
    "RepositoryContext",
    "RepositoryError",
    "RepositoryInterface",
    "RepositoryModel",
    "TypeMismatchError",
]
