"""Test field descriptor factories and classification."""

import pytest
from pydantic import ValidationError

from entitygraph.core.attributes import (
    Attr,
    BelongsTo,
    HasMany,
    HasManyBy,
    HasOne,
    attr,
    belongs_to,
    has_many,
    has_many_by,
    has_one,
    is_collection,
    is_relation,
    is_single,
)


def test_attr_holds_default_and_mutator():
    """Test attr keeps its default value and optional mutator."""
    upper = str.upper
    field = attr("ada", upper)

    assert isinstance(field, Attr)
    assert field.type == "attr"
    assert field.value == "ada"
    assert field.mutator is upper


def test_attr_defaults_to_none_without_mutator():
    field = attr()
    assert field.value is None
    assert field.mutator is None


@pytest.mark.parametrize(
    "factory,cls,kind",
    [
        (has_one, HasOne, "has_one"),
        (belongs_to, BelongsTo, "belongs_to"),
        (has_many, HasMany, "has_many"),
    ],
)
def test_relation_factories(factory, cls, kind):
    """Test relation factories start with an empty value."""
    field = factory("Post", "user_id")

    assert isinstance(field, cls)
    assert field.type == kind
    assert field.entity == "Post"
    assert field.foreign_key == "user_id"
    assert field.value is None
    assert field.polymorphic is False


def test_relation_factory_polymorphic_flag():
    field = belongs_to("Post", "commentable_id", True)
    assert field.polymorphic is True


def test_has_many_by_defaults_other_key_to_id():
    """Test has_many_by uses 'id' as the other key when not given."""
    field = has_many_by("Tag", "tag_ids")

    assert isinstance(field, HasManyBy)
    assert field.type == "has_many_by"
    assert field.other_key == "id"


def test_has_many_by_custom_other_key():
    field = has_many_by("Tag", "tag_slugs", "slug")
    assert field.other_key == "slug"


def test_relation_accepts_entity_class():
    class Target:
        pass

    assert has_one(Target, "owner_id").entity is Target


def test_is_relation():
    """Test every kind except attr is a relation."""
    assert is_relation(attr(1)) is False
    assert is_relation(has_one("A", "a_id")) is True
    assert is_relation(belongs_to("A", "a_id")) is True
    assert is_relation(has_many("A", "a_id")) is True
    assert is_relation(has_many_by("A", "a_ids")) is True


def test_single_and_collection_relations():
    assert is_single(has_one("A", "a_id"))
    assert is_single(belongs_to("A", "a_id"))
    assert not is_single(has_many("A", "a_id"))
    assert is_collection(has_many("A", "a_id"))
    assert is_collection(has_many_by("A", "a_ids"))
    assert not is_collection(attr())


def test_type_is_frozen():
    """Test a descriptor's kind cannot change after creation."""
    field = has_one("Post", "user_id")

    with pytest.raises(ValidationError):
        field.type = "has_many"

    assert field.type == "has_one"


def test_value_can_be_assigned():
    field = has_many("Post", "user_id")
    field.value = [{"id": 1}]
    assert field.value == [{"id": 1}]
