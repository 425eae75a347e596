"""
Explicit repository context.

Carries everything a repository needs from its surroundings: the session it
queries through, how entity descriptors map onto model classes, and where
the current page number comes from when ``paginate`` is not told.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session, registry as mapper_registry

from polaris.db.models.base import Base
from polaris.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Resolver = Callable[[Any], Any]
PageResolver = Callable[[str], Any]


@dataclass
class RepositoryContext:
    session: Session
    registry: Optional[mapper_registry] = None
    resolver: Optional[Resolver] = None
    page_resolver: Optional[PageResolver] = None

    @property
    def model_registry(self) -> mapper_registry:
        return self.registry if self.registry is not None else Base.registry

    def resolve(self, descriptor: Any):
        """Map an entity descriptor to the class that builds its instances.

        Model classes pass through unchanged; strings are looked up by class
        name or dotted path among the registry's mappers. A custom
        ``resolver`` replaces this lookup entirely.
        """
        if self.resolver is not None:
            return self.resolver(descriptor)
        if not isinstance(descriptor, str):
            return descriptor
        for mapper in self.model_registry.mappers:
            cls = mapper.class_
            if descriptor in (cls.__name__, f"{cls.__module__}.{cls.__qualname__}"):
                return cls
        raise ConfigurationError(f"No mapped model named {descriptor!r} in the registry")

    def resolve_page(self, page_name: str) -> Optional[int]:
        """Current page for ``page_name`` according to the page resolver, if any."""
        if self.page_resolver is None:
            return None
        raw = self.page_resolver(page_name)
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric %s value %r", page_name, raw)
            return None
