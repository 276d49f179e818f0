"""Entity definitions and instances."""

import logging
from collections.abc import Mapping
from typing import Any, Callable, ClassVar

from entitygraph import normalizer
from entitygraph.core import attributes
from entitygraph.core import schema as schema_builder
from entitygraph.core.attributes import Attr, Attribute, BelongsTo, HasMany, HasManyBy, HasOne, RelationAttribute
from entitygraph.core.registry import Registry, auto_register_entity
from entitygraph.errors import DiscriminatorError, EntityNotFoundError
from entitygraph.normalizer import ArraySchema, EntitySchema, NormalizedData, Records

logger = logging.getLogger(__name__)

Fields = dict[str, Attribute]
Mutators = dict[str, Callable[[Any], Any]]


class Entity:
    """Base class for entity definitions.

    Subclasses declare their fields and relations by overriding ``fields()``.
    Creating an instance merges the given data over the field defaults and
    builds nested instances for every relation. Relations may name their
    target by class or by registered name, which lets two entities refer to
    each other regardless of declaration order.

    Auto-registers with the current registry context if available.

    Example:
        >>> class User(Entity):
        ...     @classmethod
        ...     def fields(cls):
        ...         return {
        ...             "id": cls.attr(None),
        ...             "name": cls.attr(""),
        ...             "posts": cls.has_many("Post", "user_id"),
        ...         }

    Field values are read as attributes (``user.name``) or items
    (``user["name"]``). Use item access for fields whose name is shadowed by
    a method of this class, such as ``fields`` or ``schema``.
    """

    # Name used for normalized buckets and registry lookups (defaults to class name)
    entity: ClassVar[str] = ""

    primary_key: ClassVar[str] = "id"

    # Registry (connection) the entity is bound to
    registry: ClassVar[Registry | None] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        if "entity" not in cls.__dict__:
            cls.entity = cls.__name__

        # An explicitly declared registry wins over the current context;
        # subclasses do not inherit their parent's registration.
        if cls.__dict__.get("registry") is not None:
            cls.registry.register(cls)
        else:
            cls.registry = None
            auto_register_entity(cls)

    def __init__(self, data: "Mapping[str, Any] | Entity | None" = None):
        object.__setattr__(self, "_values", {})
        self._initialize(data)

    @classmethod
    def fields(cls) -> Fields:
        """The definition of the fields of the entity and its relations."""
        return {}

    @classmethod
    def mutators(cls) -> Mutators:
        """Mutators applied to matching attribute fields at instantiation."""
        return {}

    @classmethod
    def attr(cls, value: Any = None, mutator: Callable[[Any], Any] | None = None) -> Attr:
        return attributes.attr(value, mutator)

    @classmethod
    def has_one(cls, entity: Any, foreign_key: str, polymorphic: bool = False) -> HasOne:
        return attributes.has_one(entity, foreign_key, polymorphic)

    @classmethod
    def belongs_to(cls, entity: Any, foreign_key: str, polymorphic: bool = False) -> BelongsTo:
        return attributes.belongs_to(entity, foreign_key, polymorphic)

    @classmethod
    def has_many(cls, entity: Any, foreign_key: str, polymorphic: bool = False) -> HasMany:
        return attributes.has_many(entity, foreign_key, polymorphic)

    @classmethod
    def has_many_by(
        cls, entity: Any, foreign_key: str, other_key: str = "id", polymorphic: bool = False
    ) -> HasManyBy:
        return attributes.has_many_by(entity, foreign_key, other_key, polymorphic)

    @classmethod
    def relation(cls, name: str) -> type["Entity"]:
        """Find a related entity by name in this entity's registry.

        Raises:
            EntityNotFoundError: If the entity is unbound or name is unknown
        """
        if cls.registry is None:
            raise EntityNotFoundError(
                f"Cannot resolve relation {name}: entity {cls.entity} is not registered with a registry"
            )

        return cls.registry.get(name)

    @classmethod
    def resolve_relation(cls, attribute: RelationAttribute) -> type["Entity"]:
        """Resolve the entity class a relation points at.

        Polymorphic relations are resolved from the ``type`` discriminator of
        their current value, relations declared by name through the registry.
        """
        if attribute.polymorphic:
            return cls.relation(_discriminator(attribute.value))

        if isinstance(attribute.entity, str):
            return cls.relation(attribute.entity)

        return attribute.entity

    @classmethod
    def schema(
        cls, many: bool = False, context: schema_builder.SchemaContext | None = None
    ) -> EntitySchema | ArraySchema:
        """Create the normalization schema that represents this entity.

        Args:
            many: If true, return a schema for a list of records
            context: Shared build context (a fresh one is created if omitted)
        """
        return schema_builder.many(cls, context) if many else schema_builder.one(cls, context)

    @classmethod
    def normalize(cls, data: Any) -> NormalizedData:
        """Flatten nested data into per-entity buckets keyed by primary key."""
        context = schema_builder.SchemaContext()
        root = cls.schema(isinstance(data, (list, tuple)), context)

        normalized = normalizer.normalize(data, root)
        logger.debug("Normalized %s into %d buckets", cls.entity, len(normalized))

        # Entities reached through polymorphic relations join the context during the walk
        return {
            name: cls.attach_foreign_keys(records, context.entities.get(name) or cls.relation(name))
            for name, records in normalized.items()
        }

    @staticmethod
    def attach_foreign_keys(records: Records, entity: type["Entity"]) -> Records:
        """Make sure every belongs to relation has its foreign key set."""
        fields = entity.fields()
        attached: Records = {}

        for key, record in records.items():
            new_record = dict(record)

            for field, value in record.items():
                attribute = fields.get(field)
                if attribute is None or attribute.type != "belongs_to":
                    continue

                if new_record.get(attribute.foreign_key) is not None:
                    continue

                # Polymorphic references are stored as {"id": ..., "schema": ...}
                if attribute.polymorphic and isinstance(value, dict):
                    value = value.get("id")

                new_record[attribute.foreign_key] = value
                logger.debug("Attached %s.%s = %r", entity.entity, attribute.foreign_key, value)

            attached[key] = new_record

        return attached

    def get_id(self) -> Any:
        """Get the value of the primary key."""
        return self._values.get(self.primary_key)

    def to_json(self) -> dict[str, Any]:
        """Serialize field values into plain nested data.

        Falsy values (None, 0, "", empty lists) are passed through untouched.
        """
        data: dict[str, Any] = {}

        for key, attribute in self._fields().items():
            value = self._values.get(key)

            if not value:
                data[key] = value
            elif attribute.type in ("has_one", "belongs_to"):
                data[key] = value.to_json()
            elif attribute.type == "has_many":
                data[key] = [item.to_json() for item in value]
            else:
                data[key] = value

        return data

    def _fields(self) -> Fields:
        return type(self).fields()

    def _initialize(self, data: Mapping[str, Any] | None) -> None:
        """Assign every field, building nested instances for relations."""
        for key, attribute in self._merge_fields(data).items():
            self._values[key] = self._build_value(key, attribute)

    def _merge_fields(self, data: Mapping[str, Any] | None = None) -> Fields:
        """Merge given data into copies of the field defaults.

        Unknown keys in data are ignored. Descriptors are deep copied so the
        definition returned by ``fields()`` is never written to.
        """
        fields = {key: attribute.model_copy(deep=True) for key, attribute in self._fields().items()}

        if data is None:
            return fields

        # Instances are rebuilt from their serialized fields
        if isinstance(data, Entity):
            data = data.to_json()

        if not isinstance(data, Mapping):
            raise TypeError(f"{type(self).__name__} expects a mapping of field values, got {type(data).__name__}")

        for key, value in data.items():
            if key in fields:
                fields[key].value = value

        return fields

    def _build_value(self, key: str, attribute: Attribute) -> Any:
        value = attribute.value

        if value is None:
            return None

        if attribute.type == "attr":
            mutator = attribute.mutator or self.mutators().get(key)
            return mutator(value) if mutator else value

        # Bare ids stand in for records that are not embedded
        if _is_placeholder(value):
            return None

        if attribute.type in ("has_one", "belongs_to"):
            # Any other scalar (False, "") is an empty relation
            if not isinstance(value, (Mapping, Entity)):
                return None
            return self._related(attribute, value)(value)

        if attribute.type in ("has_many", "has_many_by"):
            if not isinstance(value, (list, tuple)):
                return None
            return [self._related(attribute, item)(item) for item in value]

        raise TypeError(f"Unknown attribute type {attribute.type}")

    def _related(self, attribute: RelationAttribute, value: Any) -> type["Entity"]:
        if attribute.polymorphic and isinstance(value, Entity):
            return type(value)
        if attribute.polymorphic:
            attribute = attribute.model_copy(update={"value": value})
        return self.resolve_relation(attribute)

    def __getattr__(self, name: str) -> Any:
        values = self.__dict__.get("_values")
        if values is not None and name in values:
            return values[name]
        raise AttributeError(f"{type(self).__name__!r} object has no field {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._values:
            self._values[name] = value
        else:
            object.__setattr__(self, name, value)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return type(self) is type(other) and self._values == other._values

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_placeholder(value: Any) -> bool:
    if _is_number(value):
        return True
    return isinstance(value, (list, tuple)) and len(value) > 0 and _is_number(value[0])


def _discriminator(value: Any) -> str:
    # Raw records carry "type"; normalized union references carry "schema"
    if isinstance(value, Mapping):
        name = value.get("type") or value.get("schema")
        if isinstance(name, str) and name:
            return name

    raise DiscriminatorError(f"Polymorphic relation value {value!r} has no type discriminator")
