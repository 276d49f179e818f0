"""Configuration file format for entitygraph."""

import json
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import BaseModel, Field

CONFIG_NAMES = ["entitygraph.yaml", "entitygraph.yml", "entitygraph.json"]


class EntityGraphConfig(BaseModel):
    """entitygraph configuration file format.

    Can be saved as entitygraph.yaml or entitygraph.json.

    Example YAML:
        definitions: ./entities
        connection: blog
        indent: 2
    """

    definitions: str = Field(
        default=".", description="Entity definition file or directory (defaults to current dir)"
    )
    connection: str = Field(default="default", description="Name of the registry entities are loaded into")
    indent: int | None = Field(default=2, description="JSON indent used by CLI output (None for compact)")

    def resolve_paths(self, base_dir: Path | None = None) -> "EntityGraphConfig":
        """Return a copy whose definitions path is absolute, anchored at base_dir or the cwd."""
        base = base_dir or Path.cwd()

        definitions_path = Path(self.definitions)
        if not definitions_path.is_absolute():
            definitions_path = (base / definitions_path).resolve()

        return self.model_copy(update={"definitions": str(definitions_path)})


def _parse_yaml(text: str) -> Any:
    return yaml.safe_load(text)


# Config file suffix -> parser of its text
CONFIG_PARSERS: dict[str, Callable[[str], Any]] = {
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".json": json.loads,
}


def load_config(config_path: Path) -> EntityGraphConfig:
    """Read an entitygraph config file.

    The parser is picked from the file suffix. An empty file yields the
    defaults, and a relative ``definitions`` path is taken relative to the
    directory holding the config file.

    Raises:
        FileNotFoundError: If config_path does not exist
        ValueError: If the suffix is unknown or the content is not a mapping
    """
    config_path = Path(config_path)
    parser = CONFIG_PARSERS.get(config_path.suffix.lower())
    if parser is None:
        raise ValueError(
            f"Unsupported config format: {config_path.suffix}. Use one of {', '.join(CONFIG_PARSERS)}"
        )

    try:
        data = parser(config_path.read_text()) or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Config file not found: {config_path}") from None

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")

    return EntityGraphConfig.model_validate(data).resolve_paths(config_path.parent)


def find_config(start_dir: Path | None = None) -> Path | None:
    """Return the nearest config file in start_dir or one of its parents."""
    start = (start_dir or Path.cwd()).resolve()

    for directory in (start, *start.parents):
        candidates = (directory / name for name in CONFIG_NAMES)
        found = next((path for path in candidates if path.is_file()), None)
        if found is not None:
            return found

    return None
