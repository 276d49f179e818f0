"""CLI for entitygraph normalization and instantiation."""

import json
import logging
from pathlib import Path
from typing import Any

import typer
import yaml

from entitygraph import Entity, Registry, __version__, load_definitions
from entitygraph.config import EntityGraphConfig, find_config, load_config
from entitygraph.errors import EntityGraphError


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"entitygraph {__version__}")
        raise typer.Exit()


app = typer.Typer(
    help="entitygraph: normalize and instantiate entity graphs",
    no_args_is_help=True,
)

# Global state for config (set in callback, used in commands)
_loaded_config: EntityGraphConfig | None = None


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True, help="Show version"
    ),
    config: Path = typer.Option(None, "--config", "-c", help="Path to config file (entitygraph.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """entitygraph CLI.

    A config file (entitygraph.yaml or entitygraph.json) sets the default
    definitions path and connection name. CLI arguments override it.
    """
    global _loaded_config

    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    config_path = config or find_config()
    _loaded_config = None

    if config_path:
        try:
            _loaded_config = load_config(config_path)
            typer.echo(f"Loaded config from: {config_path}", err=True)
        except (OSError, ValueError) as e:
            typer.echo(f"Warning: Failed to load config: {e}", err=True)


def _load_registry(definitions: Path | None) -> Registry:
    config = _loaded_config or EntityGraphConfig()
    path = definitions or Path(config.definitions)

    registry = Registry(config.connection)
    try:
        load_definitions(registry, path)
    except (ValueError, EntityGraphError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not len(registry):
        typer.echo(f"Error: no entity definitions found in {path}", err=True)
        raise typer.Exit(1)

    return registry


def _read_data(data_file: Path) -> Any:
    if not data_file.exists():
        typer.echo(f"Error: {data_file} does not exist", err=True)
        raise typer.Exit(1)

    content = data_file.read_text()
    try:
        if data_file.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(content)
        return json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        typer.echo(f"Error: could not parse {data_file}: {e}", err=True)
        raise typer.Exit(1)


def _json_default(value: Any) -> Any:
    # has_many_by relations serialize to nested instances
    if isinstance(value, Entity):
        return value.to_json()
    return str(value)


def _echo_json(data: Any) -> None:
    indent = (_loaded_config or EntityGraphConfig()).indent
    typer.echo(json.dumps(data, indent=indent, default=_json_default))


@app.command()
def entities(
    definitions: Path = typer.Option(None, "--definitions", "-d", help="Entity definition file or directory"),
):
    """
    List the entities found in the definitions and their fields.

    Examples:
      entitygraph entities --definitions entities/
    """
    registry = _load_registry(definitions)

    for entity in registry:
        typer.echo(f"{entity.entity} (primary key: {entity.primary_key})")
        for key, attribute in entity.fields().items():
            if attribute.type == "attr":
                typer.echo(f"  {key}: attr")
            else:
                target = "<polymorphic>" if attribute.polymorphic else attribute.entity
                typer.echo(f"  {key}: {attribute.type} {target} via {attribute.foreign_key}")


@app.command()
def normalize(
    entity: str = typer.Argument(..., help="Name of the root entity"),
    data_file: Path = typer.Argument(..., help="JSON or YAML file with one record or a list of records"),
    definitions: Path = typer.Option(None, "--definitions", "-d", help="Entity definition file or directory"),
):
    """
    Flatten nested records into per-entity buckets keyed by primary key.

    Examples:
      entitygraph normalize User users.json --definitions entities/
    """
    registry = _load_registry(definitions)
    data = _read_data(data_file)

    try:
        normalized = registry.get(entity).normalize(data)
    except EntityGraphError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _echo_json(normalized)


@app.command()
def instantiate(
    entity: str = typer.Argument(..., help="Name of the root entity"),
    data_file: Path = typer.Argument(..., help="JSON or YAML file with one record or a list of records"),
    definitions: Path = typer.Option(None, "--definitions", "-d", help="Entity definition file or directory"),
):
    """
    Build entity instances from records and print them serialized.

    Missing fields are filled with their defaults and unknown keys dropped.

    Examples:
      entitygraph instantiate User user.yaml --definitions entities/
    """
    registry = _load_registry(definitions)
    data = _read_data(data_file)

    try:
        model = registry.get(entity)
        if isinstance(data, list):
            result = [model(record).to_json() for record in data]
        else:
            result = model(data).to_json()
    except (EntityGraphError, TypeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _echo_json(result)


if __name__ == "__main__":
    app()
