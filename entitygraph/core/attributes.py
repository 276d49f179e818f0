"""Field descriptors for entity definitions.

Every field of an entity is described by one of five descriptor kinds:

- attr: a plain attribute holding a default value
- has_one: the related entity holds a foreign key pointing at this one
- belongs_to: this entity holds a foreign key pointing at the related one
- has_many: many related entities hold a foreign key pointing at this one
- has_many_by: this entity holds a list of keys of the related entities
"""

from typing import Annotated, Any, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

RelationType = Literal["has_one", "belongs_to", "has_many", "has_many_by"]


class Attr(BaseModel):
    """Plain attribute. ``value`` is the default used at instantiation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["attr"] = Field(default="attr", frozen=True, description="Descriptor kind")
    value: Any = Field(default=None, description="Default value of the attribute")
    mutator: Callable[[Any], Any] | None = Field(
        default=None, description="Transform applied to the value at instantiation"
    )


class Relation(BaseModel):
    """Fields shared by every relation descriptor."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # An Entity subclass or the name it is registered under
    entity: Any = Field(..., description="Related entity class or its registered name")
    foreign_key: str = Field(..., description="Foreign key column linking the two entities")
    value: Any = Field(default=None, description="Current raw relation payload")
    polymorphic: bool = Field(default=False, description="Resolve the related entity from value['type']")


class HasOne(Relation):
    type: Literal["has_one"] = Field(default="has_one", frozen=True, description="Descriptor kind")


class BelongsTo(Relation):
    type: Literal["belongs_to"] = Field(default="belongs_to", frozen=True, description="Descriptor kind")


class HasMany(Relation):
    type: Literal["has_many"] = Field(default="has_many", frozen=True, description="Descriptor kind")


class HasManyBy(Relation):
    type: Literal["has_many_by"] = Field(default="has_many_by", frozen=True, description="Descriptor kind")
    other_key: str = Field(default="id", description="Key on the related entity matched by foreign_key values")


Attribute = Annotated[Union[Attr, HasOne, BelongsTo, HasMany, HasManyBy], Field(discriminator="type")]
RelationAttribute = Union[HasOne, BelongsTo, HasMany, HasManyBy]


def attr(value: Any = None, mutator: Callable[[Any], Any] | None = None) -> Attr:
    """Create a plain attribute with a default value."""
    return Attr(value=value, mutator=mutator)


def has_one(entity: Any, foreign_key: str, polymorphic: bool = False) -> HasOne:
    """Create a has one relationship."""
    return HasOne(entity=entity, foreign_key=foreign_key, polymorphic=polymorphic)


def belongs_to(entity: Any, foreign_key: str, polymorphic: bool = False) -> BelongsTo:
    """Create a belongs to relationship."""
    return BelongsTo(entity=entity, foreign_key=foreign_key, polymorphic=polymorphic)


def has_many(entity: Any, foreign_key: str, polymorphic: bool = False) -> HasMany:
    """Create a has many relationship."""
    return HasMany(entity=entity, foreign_key=foreign_key, polymorphic=polymorphic)


def has_many_by(entity: Any, foreign_key: str, other_key: str = "id", polymorphic: bool = False) -> HasManyBy:
    """Create a has many by relationship (a list of keys stored on this entity)."""
    return HasManyBy(entity=entity, foreign_key=foreign_key, other_key=other_key, polymorphic=polymorphic)


def is_relation(attribute: Attribute) -> bool:
    """Check if the given descriptor is a relationship."""
    return attribute.type != "attr"


def is_single(attribute: Attribute) -> bool:
    """Check if the given relation points at a single record."""
    return attribute.type in ("has_one", "belongs_to")


def is_collection(attribute: Attribute) -> bool:
    """Check if the given relation points at a list of records."""
    return attribute.type in ("has_many", "has_many_by")
