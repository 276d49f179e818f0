"""Errors raised by the entity graph."""


class EntityGraphError(Exception):
    """Base class for entity graph errors."""

    pass


class ConfigurationError(EntityGraphError):
    """Raised when an entity graph declaration is broken."""

    pass


class EntityNotFoundError(ConfigurationError):
    """Raised when an entity name cannot be resolved in a registry."""

    pass


class DiscriminatorError(ConfigurationError):
    """Raised when a polymorphic relation value has no usable type discriminator."""

    pass


class DefinitionError(EntityGraphError):
    """Raised when an entity definition file cannot be parsed."""

    pass
