from unittest.mock import Mock

import pytest
from sqlalchemy import Column, Integer
from sqlalchemy.orm import Session, declarative_base

from polaris.db.context import RepositoryContext
from polaris.db.models import Base, RepositoryModel
from polaris.exceptions import ConfigurationError

from tests.fixtures.models import User

OtherBase = declarative_base(cls=RepositoryModel)


class Widget(OtherBase):
    __tablename__ = 'widgets'
    id = Column(Integer, primary_key=True)


def _ctx(**kwargs):
    return RepositoryContext(session=Mock(spec=Session), **kwargs)


def test_classes_pass_through():
    assert _ctx().resolve(User) is User


def test_default_registry_is_package_base():
    assert _ctx().model_registry is Base.registry


def test_names_resolve_against_custom_registry():
    ctx = _ctx(registry=OtherBase.registry)
    assert ctx.resolve("Widget") is Widget
    with pytest.raises(ConfigurationError):
        ctx.resolve("User")


def test_unknown_name_raises():
    with pytest.raises(ConfigurationError):
        _ctx().resolve("Widget")


def test_custom_resolver_replaces_lookup():
    resolver = Mock(return_value=Widget)
    assert _ctx(resolver=resolver).resolve(User) is Widget
    resolver.assert_called_once_with(User)


def test_resolve_page_without_resolver():
    assert _ctx().resolve_page("page") is None


@pytest.mark.parametrize("raw, expected", [("3", 3), (4, 4), (None, None), ("x", None), ([], None)])
def test_resolve_page_coercion(raw, expected):
    ctx = _ctx(page_resolver=lambda name: raw)
    assert ctx.resolve_page("page") == expected


def test_page_resolver_receives_page_name():
    resolver = Mock(return_value="2")
    _ctx(page_resolver=resolver).resolve_page("comments_page")
    resolver.assert_called_once_with("comments_page")
