"""
Shared SQLAlchemy base and the entity capability contract.

Repositories only accept model classes that can be constructed, persisted
and queried through the methods declared on ``EntityModel``. ``Base`` mixes
in ``RepositoryModel`` so every model declared on it qualifies.
"""
from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, declarative_base

logger = logging.getLogger(__name__)


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


@runtime_checkable
class EntityModel(Protocol):
    """Capabilities a model class must offer to back a repository."""

    def new_instance(self, attributes: Optional[Mapping[str, Any]] = None) -> Any: ...

    def save(self, session: Session) -> bool: ...

    def new_query(self, session: Session) -> Query: ...


class RepositoryModel:
    """Default EntityModel implementation for declarative models."""

    @classmethod
    def new_instance(cls, attributes: Optional[Mapping[str, Any]] = None):
        return cls(**dict(attributes or {}))

    @classmethod
    def new_query(cls, session: Session) -> Query:
        return session.query(cls)

    def save(self, session: Session) -> bool:
        """Add and commit the instance; roll back and return False on failure."""
        session.add(self)
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Failed to persist %s: %s", type(self).__name__, exc)
            return False
        session.refresh(self)
        return True


Base = declarative_base(cls=RepositoryModel)
