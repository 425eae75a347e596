"""
Generic repository over a SQLAlchemy query.

A repository is bound to one model class and keeps a single in-progress
``Query`` for it. Composition methods narrow that query and return the
repository so calls chain; terminal methods execute it and reset the
repository to the unfiltered "all rows" query.

    class UserRepository(Repository[User]):
        model_class = User

        def scope_adults(self):
            return self.where("age", ">=", 18)

    repo = UserRepository(RepositoryContext(session=db))
    repo.where("age", ">", 18).order_by("name").take(10).get()

Unknown attribute names are looked up in the scope registry (see
``scopes``) before failing with ``MethodNotFoundError``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Callable, ClassVar, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar, Union

from sqlalchemy import and_, inspect as sa_inspect, or_
from sqlalchemy.orm import Query, QueryableAttribute, load_only
from sqlalchemy.sql.elements import ColumnElement

from polaris.db.context import RepositoryContext
from polaris.db.models.base import EntityModel
from polaris.db.pagination import Page
from polaris.db.repositories.scopes import ScopeRegistry
from polaris.exceptions import ConfigurationError, MethodNotFoundError, TypeMismatchError
from polaris.utils.settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_COLUMNS = ("*",)

Columns = Union[str, Sequence[Any]]

_UNSET = object()

_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "=": lambda col, value: col == value,
    "==": lambda col, value: col == value,
    "!=": lambda col, value: col != value,
    "<>": lambda col, value: col != value,
    "<": lambda col, value: col < value,
    "<=": lambda col, value: col <= value,
    ">": lambda col, value: col > value,
    ">=": lambda col, value: col >= value,
    "like": lambda col, value: col.like(value),
    "not like": lambda col, value: col.not_like(value),
    "ilike": lambda col, value: col.ilike(value),
    "not ilike": lambda col, value: col.not_ilike(value),
    "in": lambda col, value: col.in_(list(value)),
    "not in": lambda col, value: col.not_in(list(value)),
    "is": lambda col, value: col.is_(value),
    "is not": lambda col, value: col.is_not(value),
}

_DIRECTIONS = ("asc", "desc")


class RepositoryInterface(ABC, Generic[T]):
    """Methods every repository must provide."""

    @abstractmethod
    def get(self, columns: Columns = ALL_COLUMNS) -> List[T]:
        """Return all records matching the current query."""

    @abstractmethod
    def paginate(
        self,
        per_page: Optional[int] = None,
        columns: Columns = ALL_COLUMNS,
        page_name: str = "page",
        page: Optional[int] = None,
    ) -> Page:
        """Return one page of the records matching the current query."""


class Repository(RepositoryInterface[T]):
    """Fluent CRUD and query composition for a single model class."""

    model_class: ClassVar[Any] = None

    def __init__(self, context: RepositoryContext, model_class: Any = None):
        self._context = context
        self._descriptor = model_class if model_class is not None else type(self).model_class
        self.make_model()
        self._scopes = ScopeRegistry.collect(self, self._model_instance)

    # ------------------------------------------------------------------ setup

    def make_model(self) -> T:
        """Resolve the bound descriptor and derive the initial query from it."""
        name = type(self).__name__
        if self._descriptor is None or self._descriptor == "":
            raise ConfigurationError(f"The model class must be set on the repository {name}.")

        factory = self._context.resolve(self._descriptor)
        if not self._is_entity_model(factory):
            raise TypeMismatchError(name, factory)

        self._model_class = factory
        self._mapper = sa_inspect(factory)
        self._model_instance = factory.new_instance()
        self.new_query()
        logger.debug("%s bound to %s", name, factory.__name__)
        return self._model_instance

    @staticmethod
    def _is_entity_model(factory: Any) -> bool:
        if not isinstance(factory, type):
            return False
        if sa_inspect(factory, raiseerr=False) is None:
            return False
        return isinstance(factory, EntityModel)

    @property
    def session(self):
        return self._context.session

    @property
    def query(self) -> Query:
        """The pending query with any limit/offset applied, as it would execute."""
        return self._pending()

    @property
    def scopes(self) -> ScopeRegistry:
        return self._scopes

    def model(self) -> T:
        return self._model_instance

    def new_query(self) -> "Repository[T]":
        self._query = self._model_instance.new_query(self.session)
        # Held back until execution; Query refuses filter()/order_by() after LIMIT/OFFSET
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        return self

    def new_instance(self, attributes: Optional[Mapping[str, Any]] = None) -> T:
        return self._model_class.new_instance(attributes)

    # ------------------------------------------------------------ composition

    def where(self, column: Any, operator: Any = _UNSET, value: Any = _UNSET) -> "Repository[T]":
        """Add a comparison filter.

        ``where("age", ">", 18)`` compares with an operator, ``where("name", "bob")``
        and ``where("name", value="bob")`` test equality, and a SQLAlchemy boolean
        expression may be passed on its own: ``where(User.age > 18)``.
        """
        if operator is _UNSET and value is _UNSET:
            if isinstance(column, str):
                raise ValueError(f"where() on {column!r} requires a value")
            self._query = self._query.filter(column)
            return self
        if value is _UNSET:
            operator, value = "=", operator
        elif operator is _UNSET:
            operator = "="

        key = str(operator).strip().lower()
        if key not in _OPERATORS:
            raise ValueError(f"Unsupported where() operator {operator!r}")
        self._query = self._query.filter(_OPERATORS[key](self._column(column), value))
        return self

    def where_in(self, column: Any, values: Sequence[Any] = ()) -> "Repository[T]":
        self._query = self._query.filter(self._column(column).in_(list(values)))
        return self

    def where_not_in(self, column: Any, values: Sequence[Any] = ()) -> "Repository[T]":
        self._query = self._query.filter(self._column(column).not_in(list(values)))
        return self

    def where_like(self, column: Any, value: str) -> "Repository[T]":
        """Substring match where each space in ``value`` matches any run of characters."""
        pattern = "%" + str(value).replace(" ", "%") + "%"
        self._query = self._query.filter(self._like(self._column(column), pattern))
        return self

    def search(self, columns: Union[Any, Iterable[Any]], value: str) -> "Repository[T]":
        """Match ``value`` as a substring of any of ``columns``, grouped as one OR clause."""
        if isinstance(columns, (str, bytes, ColumnElement, QueryableAttribute)) or not isinstance(columns, Iterable):
            columns = [columns]
        columns = list(columns)
        if not columns:
            raise ValueError("search() requires at least one column")
        pattern = f"%{value}%"
        self._query = self._query.filter(or_(*[self._like(self._column(c), pattern) for c in columns]))
        return self

    def order_by(self, column: Any, direction: str = "asc") -> "Repository[T]":
        direction = str(direction).strip().lower()
        if direction not in _DIRECTIONS:
            raise ValueError(f"Order direction must be 'asc' or 'desc', got {direction!r}")
        col = self._column(column)
        self._query = self._query.order_by(col.asc() if direction == "asc" else col.desc())
        return self

    def take(self, take: Optional[int]) -> "Repository[T]":
        self._limit = self._non_negative("take", take)
        return self

    def skip(self, skip: Optional[int]) -> "Repository[T]":
        self._offset = self._non_negative("skip", skip)
        return self

    def add_scope_query(self, scope: Callable[[Query], Query]) -> "Repository[T]":
        """Replace the pending query with ``scope(query)``."""
        result = scope(self._query)
        if not isinstance(result, Query):
            raise TypeError(f"Scope {scope!r} must return a Query, got {type(result).__name__}")
        self._query = result
        return self

    # --------------------------------------------------------------- terminal

    def get(self, columns: Columns = ALL_COLUMNS) -> List[T]:
        return self._consume(columns).all()

    def all(self, columns: Columns = ALL_COLUMNS) -> List[T]:
        """Every record of the model, ignoring anything composed so far."""
        self.new_query()
        return self.get(columns)

    def first(self, columns: Columns = ALL_COLUMNS) -> Optional[T]:
        return self._consume(columns).first()

    def find(self, id: Any, columns: Columns = ALL_COLUMNS) -> Optional[T]:
        """First record of the current query whose primary key equals ``id``."""
        key_columns = self._mapper.primary_key
        if len(key_columns) == 1:
            self._query = self._query.filter(key_columns[0] == id)
        else:
            values = tuple(id) if isinstance(id, (list, tuple)) else (id,)
            if len(values) != len(key_columns):
                raise ValueError(
                    f"{self._model_class.__name__} has a composite key of {len(key_columns)} columns"
                )
            self._query = self._query.filter(and_(*[col == v for col, v in zip(key_columns, values)]))
        return self.first(columns)

    def count(self) -> int:
        return self._consume().count()

    def paginate(
        self,
        per_page: Optional[int] = None,
        columns: Columns = ALL_COLUMNS,
        page_name: str = "page",
        page: Optional[int] = None,
    ) -> Page:
        if per_page is None:
            per_page = get_settings().default_per_page
        if per_page <= 0:
            raise ValueError(f"per_page must be positive, got {per_page}")
        if page is None:
            page = self._context.resolve_page(page_name)
        page = max(1, int(page or 1))

        # Pending take/skip are replaced by the page window
        query = self._query
        self.new_query()
        total = query.order_by(None).count()
        items: List[T] = []
        if total:
            items = self._project(query, columns).limit(per_page).offset((page - 1) * per_page).all()
        logger.debug(
            "%s page %s of %s rows (%s per page)", self._model_class.__name__, page, total, per_page
        )
        return Page(items=items, total=total, per_page=per_page, current_page=page, page_name=page_name)

    def to_sql(self) -> str:
        """Render the pending query for the session's dialect without executing it."""
        return str(self._compiled())

    def get_bindings(self) -> List[Any]:
        """Parameter values of the pending query, in placeholder order."""
        compiled = self._compiled()
        params = compiled.params
        names = list(params)
        positions = getattr(compiled, "positiontup", None)
        if positions and set(positions) == set(names):
            names = list(positions)
        bindings: List[Any] = []
        for name in names:
            bind = compiled.binds.get(name)
            if bind is not None and bind.expanding:
                bindings.extend(params[name])
            else:
                bindings.append(params[name])
        return bindings

    def create(self, attributes: Mapping[str, Any]) -> Optional[T]:
        """Build and persist a record; ``None`` when the database rejects it."""
        instance = self.new_instance(attributes)
        if instance.save(self.session):
            return instance
        logger.debug("%s.create returned no result", type(self).__name__)
        return None

    # ----------------------------------------------------------------- scopes

    def __getattr__(self, name: str):
        scopes = self.__dict__.get("_scopes")
        handler = scopes.lookup(name) if scopes is not None else None
        if handler is None:
            raise MethodNotFoundError(type(self).__name__, name)
        if handler.tier == "repository":
            return handler.func

        def call_model_scope(*args, **kwargs):
            result = handler.func(self._query, *args, **kwargs)
            if isinstance(result, Query):
                self._query = result
                return self
            return result

        call_model_scope.__name__ = name
        return call_model_scope

    # ---------------------------------------------------------------- helpers

    def _consume(self, columns: Columns = ALL_COLUMNS) -> Query:
        query = self._limited(self._project(self._query, columns))
        self.new_query()
        return query

    def _pending(self) -> Query:
        return self._limited(self._query)

    def _limited(self, query: Query) -> Query:
        if self._limit is not None:
            query = query.limit(self._limit)
        if self._offset is not None:
            query = query.offset(self._offset)
        return query

    def _column(self, column: Any):
        if not isinstance(column, str):
            return column
        name = column
        if "." in column:
            table, name = column.rsplit(".", 1)
            if table != self._mapper.local_table.name:
                raise ValueError(f"Column {column!r} does not belong to {self._model_class.__name__}")
        if name not in self._mapper.all_orm_descriptors:
            raise ValueError(f"{self._model_class.__name__} has no column {name!r}")
        return getattr(self._model_class, name)

    def _project(self, query: Query, columns: Columns) -> Query:
        if isinstance(columns, str):
            columns = [columns]
        columns = list(columns)
        if not columns or "*" in columns:
            return query
        return query.options(load_only(*[self._column(c) for c in columns]))

    def _compiled(self):
        bind = self.session.get_bind(mapper=self._mapper)
        return self._pending().statement.compile(dialect=bind.dialect)

    @staticmethod
    def _like(column, pattern: str):
        if get_settings().case_insensitive_like:
            return column.ilike(pattern)
        return column.like(pattern)

    @staticmethod
    def _non_negative(label: str, value: Optional[int]) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{label} must be an integer, got {value!r}")
        if value < 0:
            raise ValueError(f"{label} must not be negative, got {value}")
        return value
