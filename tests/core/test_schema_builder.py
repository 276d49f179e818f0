"""Test building normalization schemas from entity fields."""

import pytest

from entitygraph import Entity, EntityNotFoundError
from entitygraph.core.schema import SchemaContext, definition, many, one
from entitygraph.normalizer import ArraySchema, EntitySchema, UnionSchema


def test_one_builds_entity_schema(blog):
    """Test a single-record schema is keyed by entity name and primary key."""
    schema = blog.User.schema()

    assert isinstance(schema, EntitySchema)
    assert schema.key == "User"
    assert schema.id_attribute == "id"


def test_many_wraps_entity_schema(blog):
    schema = blog.User.schema(many=True)

    assert isinstance(schema, ArraySchema)
    assert isinstance(schema.schema, EntitySchema)
    assert schema.schema.key == "User"


def test_plain_attributes_are_omitted(blog):
    """Test only relation fields get nested schema nodes."""
    schema = blog.Post.schema()

    assert set(schema.schema) == {"author", "comments"}
    assert blog.Comment.schema().schema == {}


def test_relation_nodes(blog):
    schema = blog.Post.schema()

    assert isinstance(schema.schema["author"], EntitySchema)
    assert schema.schema["author"].key == "User"
    assert isinstance(schema.schema["comments"], ArraySchema)
    assert schema.schema["comments"].schema.key == "Comment"


def test_cyclic_relations_share_nodes(blog):
    """Test entities that refer to each other reuse one node per entity."""
    user = blog.User.schema()
    post = user.schema["posts"].schema

    assert post.key == "Post"
    assert post.schema["author"] is user


def test_context_collects_entities(blog):
    context = SchemaContext()
    one(blog.User, context)

    assert context.entities == {"User": blog.User, "Post": blog.Post, "Comment": blog.Comment}
    assert set(context.schemas) == {"User", "Post", "Comment"}


def test_shared_context_returns_same_node(blog):
    context = SchemaContext()
    assert one(blog.Post, context) is one(blog.Post, context)
    assert many(blog.Post, context).schema is one(blog.Post, context)


def test_custom_primary_key(registry):
    class Country(Entity):
        primary_key = "code"

        @classmethod
        def fields(cls):
            return {"code": cls.attr(None), "name": cls.attr("")}

    assert Country.schema().id_attribute == "code"


def test_has_many_by_builds_array_node(registry):
    class Tag(Entity):
        @classmethod
        def fields(cls):
            return {"id": cls.attr(None)}

    class Article(Entity):
        @classmethod
        def fields(cls):
            return {"id": cls.attr(None), "tags": cls.has_many_by(Tag, "tag_ids")}

    node = Article.schema().schema["tags"]
    assert isinstance(node, ArraySchema)
    assert node.schema.key == "Tag"


def test_polymorphic_relations_build_union_nodes(registry):
    """Test polymorphic fields are dispatched per record, not fixed at build time."""

    class Comment(Entity):
        @classmethod
        def fields(cls):
            return {
                "id": cls.attr(None),
                "commentable": cls.belongs_to("Post", "commentable_id", True),
                "reactions": cls.has_many("Reaction", "comment_id", True),
            }

    definitions = definition(Comment, SchemaContext())

    assert isinstance(definitions["commentable"], UnionSchema)
    assert isinstance(definitions["reactions"], ArraySchema)
    assert isinstance(definitions["reactions"].schema, UnionSchema)


def test_unknown_relation_name_fails_at_build(registry):
    class User(Entity):
        @classmethod
        def fields(cls):
            return {"id": cls.attr(None), "ghosts": cls.has_many("Ghost", "user_id")}

    with pytest.raises(EntityNotFoundError, match="Ghost"):
        User.schema()
