"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when counter cache configuration is invalid."""


class UnknownAssociationError(ConfigurationError):
    """Raised when a relation path names an association the type does not declare."""

    def __init__(self, entity_type: type, name: str) -> None:
        super().__init__(f"No relation {name!r} on {entity_type.__name__}")
        self.entity_type = entity_type
        self.name = name


class RegistryFrozenError(ConfigurationError):
    """Raised when a counter is registered after configuration was completed."""
