"""
Repository base classes.

Applications subclass ``Repository`` once per model and declare
``scope_<name>`` methods for reusable query fragments.
"""

from .base import ALL_COLUMNS, Repository, RepositoryInterface  # re-export
from .scopes import SCOPE_PREFIX, ScopeHandler, ScopeRegistry

__all__ = [
    "ALL_COLUMNS",
    "Repository",
    "RepositoryInterface",
    "SCOPE_PREFIX",
    "ScopeHandler",
    "ScopeRegistry",
]
