"""Generic graph normalization.

Flattens nested data into per-entity buckets keyed by identity, replacing
nested records with their ids. Schemas may reference each other in cycles;
nodes are shared by identity and only expanded while walking the data.

Example:
    >>> user = EntitySchema("User")
    >>> post = EntitySchema("Post", {"author": user})
    >>> user.define({"posts": ArraySchema(post)})
    >>> normalize({"id": 1, "posts": [{"id": 10, "author": {"id": 1}}]}, user)
    {'User': {1: {'id': 1, 'posts': [10]}}, 'Post': {10: {'id': 10, 'author': 1}}}
"""

from typing import Any, Callable

Records = dict[Any, dict[str, Any]]
NormalizedData = dict[str, Records]


class _Collector:
    """Accumulates flattened records while a normalization walk runs."""

    def __init__(self):
        self.entities: NormalizedData = {}
        # (schema key, id(record)) pairs currently being expanded
        self.visiting: set[tuple[str, int]] = set()

    def add(self, key: str, record_id: Any, record: dict[str, Any]) -> None:
        bucket = self.entities.setdefault(key, {})
        existing = bucket.get(record_id)
        bucket[record_id] = {**existing, **record} if existing else record


class EntitySchema:
    """Schema node for a single entity type."""

    def __init__(self, key: str, definition: dict[str, Any] | None = None, id_attribute: str = "id"):
        self.key = key
        self.id_attribute = id_attribute
        self.schema: dict[str, Any] = {}
        if definition:
            self.define(definition)

    def define(self, definition: dict[str, Any]) -> None:
        """Add nested schema nodes for the given fields."""
        self.schema.update(definition)

    def get_id(self, value: dict[str, Any]) -> Any:
        return value.get(self.id_attribute)

    def normalize(self, value: Any, collector: _Collector) -> Any:
        if not isinstance(value, dict):
            return value

        record_id = self.get_id(value)
        marker = (self.key, id(value))
        if marker in collector.visiting:
            return record_id

        collector.visiting.add(marker)
        try:
            record = dict(value)
            for field, schema in self.schema.items():
                if record.get(field) is not None:
                    record[field] = _visit(record[field], schema, collector)
        finally:
            collector.visiting.discard(marker)

        collector.add(self.key, record_id, record)
        return record_id

    def __repr__(self) -> str:
        return f"EntitySchema({self.key!r})"


class ArraySchema:
    """Schema node for a list of values sharing one item schema."""

    def __init__(self, schema: Any):
        self.schema = schema

    def normalize(self, value: Any, collector: _Collector) -> Any:
        if not isinstance(value, (list, tuple)):
            return value
        return [_visit(item, self.schema, collector) for item in value if item is not None]

    def __repr__(self) -> str:
        return f"ArraySchema({self.schema!r})"


class UnionSchema:
    """Schema node whose entity schema is picked per value.

    ``resolve`` receives the raw value and returns the EntitySchema to use.
    Normalized references carry the chosen schema key so the record can be
    found again: ``{"id": 1, "schema": "Post"}``.
    """

    def __init__(self, resolve: Callable[[dict[str, Any]], EntitySchema]):
        self.resolve = resolve

    def normalize(self, value: Any, collector: _Collector) -> Any:
        if not isinstance(value, dict):
            return value
        schema = self.resolve(value)
        return {"id": schema.normalize(value, collector), "schema": schema.key}

    def __repr__(self) -> str:
        return "UnionSchema()"


def _visit(value: Any, schema: Any, collector: _Collector) -> Any:
    if isinstance(schema, list):
        schema = ArraySchema(schema[0])
    return schema.normalize(value, collector)


def normalize(data: Any, schema: Any) -> NormalizedData:
    """Flatten data according to schema.

    Args:
        data: A record (dict) or a list of records
        schema: EntitySchema, ArraySchema, UnionSchema or a one-item list

    Returns:
        Mapping of entity key to mapping of id to flattened record
    """
    collector = _Collector()
    _visit(data, schema, collector)
    return collector.entities
