"""Registries mapping entity names to entity classes."""

from contextvars import ContextVar
from typing import TYPE_CHECKING

from entitygraph.errors import EntityNotFoundError

if TYPE_CHECKING:
    from entitygraph.core.entity import Entity


class Registry:
    """A named scope (connection) of entity classes.

    Relations declared by name, and polymorphic relations, are resolved
    against the registry their owning entity is bound to.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self.entities: dict[str, type["Entity"]] = {}

    def register(self, entity: type["Entity"]) -> type["Entity"]:
        """Add an entity class and bind it to this registry.

        Args:
            entity: Entity class to add

        Returns:
            The same class, so this can be used as a decorator

        Raises:
            ValueError: If another entity is registered under the same name
        """
        existing = self.entities.get(entity.entity)
        if existing is not None and existing is not entity:
            raise ValueError(f"Entity {entity.entity} already exists in registry {self.name}")

        self.entities[entity.entity] = entity
        entity.registry = self
        return entity

    def get(self, name: str) -> type["Entity"]:
        """Get entity class by name.

        Raises:
            EntityNotFoundError: If no entity is registered under name
        """
        if name not in self.entities:
            raise EntityNotFoundError(f"Entity {name} not found in registry {self.name}")

        return self.entities[name]

    def __contains__(self, name: str) -> bool:
        return name in self.entities

    def __iter__(self):
        return iter(self.entities.values())

    def __len__(self) -> int:
        return len(self.entities)

    def __repr__(self) -> str:
        return f"Registry({self.name!r}, entities={list(self.entities)})"


# Registry that newly declared entity classes join automatically
_current_registry: ContextVar[Registry | None] = ContextVar("current_registry", default=None)


def get_current_registry() -> Registry | None:
    """Get the current registry from context."""
    return _current_registry.get()


def set_current_registry(registry: Registry | None):
    """Set the current registry context."""
    _current_registry.set(registry)


def auto_register_entity(entity: type["Entity"]):
    """Auto-register entity class with current registry if available."""
    registry = get_current_registry()
    if registry is not None and entity.entity not in registry:
        registry.register(entity)
