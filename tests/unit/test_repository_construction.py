"""
Tests for repository construction: descriptor binding, resolution and the
entity capability check.
"""
import pytest
from sqlalchemy import Column, Integer
from sqlalchemy.orm import Query, declarative_base

from polaris.db.context import RepositoryContext
from polaris.db.repositories import Repository
from polaris.exceptions import ConfigurationError, RepositoryError, TypeMismatchError

from tests.fixtures.models import Post, User
from tests.fixtures.repositories import UnboundRepository, UserRepository

BareBase = declarative_base()


class BareModel(BareBase):
    """Mapped, but without new_instance/save/new_query."""
    __tablename__ = 'bare_models'
    id = Column(Integer, primary_key=True)


class LooksLikeAModel:
    """Has the methods but is not mapped."""

    @classmethod
    def new_instance(cls, attributes=None):
        return cls()

    def save(self, session):
        return True

    @classmethod
    def new_query(cls, session):
        return None


class TestDescriptorBinding:

    def test_unbound_repository_raises_configuration_error(self, context):
        with pytest.raises(ConfigurationError) as exc:
            UnboundRepository(context)
        assert "UnboundRepository" in str(exc.value)

    def test_empty_string_descriptor_raises_configuration_error(self, context):
        with pytest.raises(ConfigurationError):
            Repository(context, model_class="")

    def test_unknown_model_name_raises_configuration_error(self, context):
        with pytest.raises(ConfigurationError) as exc:
            Repository(context, model_class="Spaceship")
        assert "Spaceship" in str(exc.value)

    def test_class_attribute_binding(self, context):
        repo = UserRepository(context)
        assert isinstance(repo.model(), User)

    def test_constructor_argument_overrides_class_attribute(self, context):
        repo = UserRepository(context, model_class=Post)
        assert isinstance(repo.model(), Post)

    def test_string_descriptor_resolves_through_registry(self, context):
        repo = Repository(context, model_class="Post")
        assert type(repo.model()) is Post

    def test_dotted_descriptor_resolves_through_registry(self, context):
        repo = Repository(context, model_class=f"{User.__module__}.User")
        assert type(repo.model()) is User

    def test_custom_resolver_is_used(self, db):
        seen = []

        def resolver(descriptor):
            seen.append(descriptor)
            return User

        repo = Repository(RepositoryContext(session=db, resolver=resolver), model_class="people")
        assert seen == ["people"]
        assert type(repo.model()) is User

    def test_errors_share_a_base_class(self, context):
        with pytest.raises(RepositoryError):
            UnboundRepository(context)


class TestCapabilityCheck:

    def test_mapped_model_without_capabilities_is_rejected(self, context):
        with pytest.raises(TypeMismatchError) as exc:
            Repository(context, model_class=BareModel)
        assert "BareModel" in str(exc.value)
        assert exc.value.factory is BareModel

    def test_unmapped_class_is_rejected(self, context):
        with pytest.raises(TypeMismatchError):
            Repository(context, model_class=LooksLikeAModel)

    def test_instance_instead_of_class_is_rejected(self, context):
        with pytest.raises(TypeMismatchError):
            Repository(context, model_class=User(name="x", email="x@example.com"))

    def test_resolver_returning_non_model_is_rejected(self, db):
        ctx = RepositoryContext(session=db, resolver=lambda descriptor: object)
        with pytest.raises(TypeMismatchError) as exc:
            Repository(ctx, model_class="anything")
        assert exc.value.repository_name == "Repository"


def test_initial_query_selects_all_rows_of_the_model(users):
    assert isinstance(users.query, Query)
    sql = users.to_sql()
    assert "FROM users" in sql
    assert "WHERE" not in sql


def test_new_instance_is_unsaved(users, db):
    u = users.new_instance({"name": "Ghost", "email": "ghost@example.com"})
    assert isinstance(u, User)
    assert u.id is None
    assert u not in db


def test_new_instance_without_attributes(users):
    assert users.new_instance().name is None
