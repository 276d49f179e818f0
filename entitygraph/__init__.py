"""entitygraph: declarative entity relations with graph normalization."""

__version__ = "0.1.0"

from entitygraph.core.attributes import attr, belongs_to, has_many, has_many_by, has_one, is_relation
from entitygraph.core.entity import Entity
from entitygraph.core.registry import Registry, get_current_registry, set_current_registry
from entitygraph.errors import (
    ConfigurationError,
    DefinitionError,
    DiscriminatorError,
    EntityGraphError,
    EntityNotFoundError,
)
from entitygraph.loaders import load_definitions

__all__ = [
    "ConfigurationError",
    "DefinitionError",
    "DiscriminatorError",
    "Entity",
    "EntityGraphError",
    "EntityNotFoundError",
    "Registry",
    "attr",
    "belongs_to",
    "get_current_registry",
    "has_many",
    "has_many_by",
    "has_one",
    "is_relation",
    "load_definitions",
    "set_current_registry",
]
