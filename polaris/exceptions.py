"""
Repository error hierarchy.

All errors are raised synchronously at the call site and are never retried
or replaced by fallback values inside the package.
"""


class RepositoryError(Exception):
    """Base class for repository layer failures."""


class ConfigurationError(RepositoryError):
    """The repository has no usable entity type bound."""


class TypeMismatchError(RepositoryError):
    """The resolved entity type does not implement the EntityModel capabilities."""

    def __init__(self, repository_name: str, factory):
        self.repository_name = repository_name
        self.factory = factory
        factory_name = getattr(factory, "__name__", type(factory).__name__)
        super().__init__(
            f"{repository_name} requires a mapped model implementing new_instance/save/new_query, "
            f"got {factory_name!r}"
        )


class MethodNotFoundError(RepositoryError, AttributeError):
    """No repository method, repository scope or model scope matches the name."""

    def __init__(self, repository_name: str, method: str):
        self.repository_name = repository_name
        self.method = method
        super().__init__(f"Call to undefined method {repository_name}::{method}()")
