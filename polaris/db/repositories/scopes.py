"""
Scope registry for repositories.

Scopes are named query transformations. Repository scopes are methods called
``scope_<name>`` on the repository class and receive only the caller's
arguments. Model scopes are methods, classmethods or staticmethods called
``scope_<name>`` on the model, looked up on the repository's representative
instance, and receive the current query as their first argument. Both tiers
are collected once, when the repository is built; repository scopes shadow
model scopes of the same name.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional

SCOPE_PREFIX = "scope_"

ScopeTier = Literal["repository", "model"]


@dataclass(frozen=True)
class ScopeHandler:
    name: str
    tier: ScopeTier
    func: Callable[..., Any]


def _declared_scopes(owner: Any) -> Dict[str, Callable[..., Any]]:
    found: Dict[str, Callable[..., Any]] = {}
    source = owner if isinstance(owner, type) else type(owner)
    for attr in dir(source):
        if not attr.startswith(SCOPE_PREFIX) or len(attr) == len(SCOPE_PREFIX):
            continue
        member = getattr(owner, attr)
        if callable(member):
            found[attr[len(SCOPE_PREFIX):]] = member
    return found


class ScopeRegistry:
    """Two-tier map from scope names to handlers."""

    def __init__(self) -> None:
        self._repository: Dict[str, ScopeHandler] = {}
        self._model: Dict[str, ScopeHandler] = {}

    @classmethod
    def collect(cls, repository: Any, model: Any) -> "ScopeRegistry":
        registry = cls()
        for name, func in _declared_scopes(repository).items():
            registry.register(name, func, "repository")
        for name, func in _declared_scopes(model).items():
            registry.register(name, func, "model")
        return registry

    def register(self, name: str, func: Callable[..., Any], tier: ScopeTier) -> None:
        if tier == "repository":
            self._repository[name] = ScopeHandler(name, tier, func)
        elif tier == "model":
            self._model[name] = ScopeHandler(name, tier, func)
        else:
            raise ValueError(f"Unknown scope tier {tier!r}")

    def lookup(self, name: str) -> Optional[ScopeHandler]:
        return self._repository.get(name) or self._model.get(name)

    def names(self, tier: Optional[ScopeTier] = None) -> List[str]:
        if tier == "repository":
            return sorted(self._repository)
        if tier == "model":
            return sorted(self._model)
        return sorted(set(self._repository) | set(self._model))

    def __contains__(self, name: object) -> bool:
        return name in self._repository or name in self._model
