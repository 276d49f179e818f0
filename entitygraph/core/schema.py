"""Build normalization schemas from entity field definitions."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from entitygraph.core.attributes import is_collection, is_relation
from entitygraph.normalizer import ArraySchema, EntitySchema, UnionSchema

if TYPE_CHECKING:
    from entitygraph.core.entity import Entity


@dataclass
class SchemaContext:
    """Schema nodes and entity classes seen while building one schema graph.

    Each entity gets exactly one node per context, so entities that refer to
    each other produce a cyclic graph instead of infinite expansion.
    """

    schemas: dict[str, EntitySchema] = field(default_factory=dict)
    entities: dict[str, type["Entity"]] = field(default_factory=dict)


def one(entity: type["Entity"], context: SchemaContext | None = None) -> EntitySchema:
    """Create the schema node for a single record of entity."""
    context = context if context is not None else SchemaContext()

    if entity.entity in context.schemas:
        return context.schemas[entity.entity]

    node = EntitySchema(entity.entity, id_attribute=entity.primary_key)
    context.schemas[entity.entity] = node
    context.entities[entity.entity] = entity
    node.define(definition(entity, context))
    return node


def many(entity: type["Entity"], context: SchemaContext | None = None) -> ArraySchema:
    """Create the schema node for a list of records of entity."""
    return ArraySchema(one(entity, context))


def definition(entity: type["Entity"], context: SchemaContext) -> dict[str, Any]:
    """Map every relation field of entity to its nested schema node."""
    nodes: dict[str, Any] = {}

    for key, attribute in entity.fields().items():
        if not is_relation(attribute):
            continue

        if attribute.polymorphic:
            node = UnionSchema(_polymorphic_resolver(entity, attribute, context))
        else:
            node = one(entity.resolve_relation(attribute), context)

        nodes[key] = ArraySchema(node) if is_collection(attribute) else node

    return nodes


def _polymorphic_resolver(entity, attribute, context):
    # The related entity is only known once a record's discriminator is read
    def resolve(value: dict[str, Any]) -> EntitySchema:
        related = entity.resolve_relation(attribute.model_copy(update={"value": value}))
        return one(related, context)

    return resolve
