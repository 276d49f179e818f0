"""Pytest configuration and fixtures."""

from types import SimpleNamespace

import pytest

from entitygraph import Entity, Registry
from entitygraph.core.registry import set_current_registry


@pytest.fixture(autouse=True)
def reset_registry():
    """Clear the current registry context before and after each test.

    Entity classes declared in one test must never join another test's registry.
    """
    set_current_registry(None)

    yield

    set_current_registry(None)


@pytest.fixture
def registry():
    """Create a fresh registry that entity classes declared in the test join automatically."""
    registry = Registry("test")
    set_current_registry(registry)
    return registry


@pytest.fixture
def blog(registry):
    """User, Post and Comment entities referring to each other by name."""

    class User(Entity):
        @classmethod
        def fields(cls):
            return {
                "id": cls.attr(None),
                "name": cls.attr(""),
                "posts": cls.has_many("Post", "user_id"),
            }

    class Post(Entity):
        @classmethod
        def fields(cls):
            return {
                "id": cls.attr(None),
                "title": cls.attr(""),
                "user_id": cls.attr(None),
                "author": cls.belongs_to("User", "user_id"),
                "comments": cls.has_many("Comment", "post_id"),
            }

    class Comment(Entity):
        @classmethod
        def fields(cls):
            return {
                "id": cls.attr(None),
                "body": cls.attr(""),
                "post_id": cls.attr(None),
            }

    return SimpleNamespace(User=User, Post=Post, Comment=Comment, registry=registry)
