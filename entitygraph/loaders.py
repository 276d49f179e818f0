"""Load entity definitions from YAML or JSON files.

Definition file structure:

```yaml
entities:
  - name: User
    primary_key: id
    fields:
      id: {type: attr}
      name: ""                      # shorthand for {type: attr, default: ""}
      posts: {type: has_many, entity: Post, foreign_key: user_id}
  - name: Post
    fields:
      id: {type: attr}
      author: {type: belongs_to, entity: User, foreign_key: user_id}
```

Relation targets are entity names, resolved through the registry when
first needed, so entities may be declared in any order and any file.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from entitygraph.config import CONFIG_NAMES
from entitygraph.core import attributes
from entitygraph.core.attributes import Attribute
from entitygraph.core.entity import Entity
from entitygraph.core.registry import Registry
from entitygraph.errors import DefinitionError

logger = logging.getLogger(__name__)

DEFINITION_SUFFIXES = {".yaml", ".yml", ".json"}


class FieldDefinition(BaseModel):
    """Declarative form of a field descriptor."""

    type: Literal["attr", "has_one", "belongs_to", "has_many", "has_many_by"] = Field(
        default="attr", description="Field kind"
    )
    default: Any = Field(default=None, description="Default value for attr fields")
    entity: str | None = Field(default=None, description="Related entity name")
    foreign_key: str | None = Field(default=None, description="Foreign key column")
    other_key: str = Field(default="id", description="Key on the related entity for has_many_by")
    polymorphic: bool = Field(default=False, description="Resolve the related entity from the value's type")

    @model_validator(mode="after")
    def check_relation(self) -> "FieldDefinition":
        if self.type == "attr":
            return self
        if not self.foreign_key:
            raise ValueError(f"{self.type} field requires a foreign_key")
        if not self.entity and not self.polymorphic:
            raise ValueError(f"{self.type} field requires an entity unless it is polymorphic")
        return self

    def to_attribute(self) -> Attribute:
        if self.type == "attr":
            return attributes.attr(self.default)
        if self.type == "has_many_by":
            return attributes.has_many_by(self.entity, self.foreign_key, self.other_key, self.polymorphic)

        factory = {
            "has_one": attributes.has_one,
            "belongs_to": attributes.belongs_to,
            "has_many": attributes.has_many,
        }[self.type]
        return factory(self.entity, self.foreign_key, self.polymorphic)


class EntityDefinition(BaseModel):
    """Declarative form of an entity."""

    name: str = Field(..., description="Entity name")
    primary_key: str = Field(default="id", description="Primary key field")
    field_definitions: dict[str, FieldDefinition] = Field(
        default_factory=dict, alias="fields", description="Field definitions keyed by field name"
    )

    @field_validator("field_definitions", mode="before")
    @classmethod
    def expand_shorthand(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {key: spec if isinstance(spec, dict) else {"default": spec} for key, spec in value.items()}


def substitute_env_vars(content: str) -> str:
    """Substitute ${ENV_VAR} and ${ENV_VAR:-default} in file content.

    Unknown variables without a default are left as written.
    """

    def replace_var(match):
        var_expr = match.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.environ.get(var_name, default)
        return os.environ.get(var_expr, match.group(0))

    return re.sub(r"\$\{([^}]+)\}", replace_var, content)


def parse_definitions(source: str | Path) -> list[EntityDefinition]:
    """Parse entity definitions from a YAML or JSON file.

    Raises:
        DefinitionError: If the file cannot be read as entity definitions
    """
    source = Path(source)

    try:
        content = substitute_env_vars(source.read_text(encoding="utf-8"))
        if source.suffix.lower() == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise DefinitionError(f"Could not parse {source}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("entities"), list):
        raise DefinitionError(f"{source} has no 'entities' list")

    try:
        return [EntityDefinition.model_validate(item) for item in data["entities"]]
    except ValidationError as e:
        raise DefinitionError(f"Invalid entity definition in {source}: {e}") from e


def build_entity(definition: EntityDefinition, registry: Registry) -> type[Entity]:
    """Create an entity class from its definition and register it.

    Raises:
        DefinitionError: If the registry already holds an entity with this name
    """
    field_definitions = definition.field_definitions

    def fields(cls):
        return {key: field.to_attribute() for key, field in field_definitions.items()}

    namespace = {
        "__module__": __name__,
        "__doc__": f"{definition.name} entity loaded from definitions.",
        "entity": definition.name,
        "primary_key": definition.primary_key,
        "registry": registry,
        "fields": classmethod(fields),
    }

    try:
        return type(definition.name, (Entity,), namespace)
    except ValueError as e:
        raise DefinitionError(str(e)) from e


def load_definitions(registry: Registry, path: str | Path) -> list[type[Entity]]:
    """Load entity definitions from a file or directory into registry.

    A single file must parse cleanly. When loading a directory, files that
    are not entity definitions are skipped with a warning.

    Args:
        registry: Registry to add the entity classes to
        path: Definition file or directory containing definition files

    Returns:
        Entity classes created, in load order

    Example:
        >>> registry = Registry("blog")
        >>> load_definitions(registry, "entities/")
        >>> registry.get("User")(data).to_json()
    """
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Path {path} does not exist")

    definitions: list[EntityDefinition] = []

    if path.is_file():
        definitions.extend(parse_definitions(path))
    else:
        for file_path in sorted(path.rglob("*")):
            if not file_path.is_file() or file_path.suffix.lower() not in DEFINITION_SUFFIXES:
                continue
            if file_path.name in CONFIG_NAMES:
                continue

            try:
                definitions.extend(parse_definitions(file_path))
            except DefinitionError as e:
                logger.warning("Could not parse %s: %s", file_path, e)

    entities = [build_entity(definition, registry) for definition in definitions]
    logger.debug("Loaded %d entities into registry %s", len(entities), registry.name)
    return entities
