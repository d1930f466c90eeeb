"""Custom exception classes for the visibility engine."""

from __future__ import annotations


class FormLogicError(Exception):
    """Base exception for visibility engine failures."""

    def __init__(self, message: str, field_id: str | None = None):
        super().__init__(message)
        self.field_id = field_id


class FieldNotInGraphError(FormLogicError, KeyError):
    """Raised when a graph accessor is called for a field that was never built into it."""

    def __init__(self, field_id: str):
        super().__init__(f"Field '{field_id}' not found in dependency graph", field_id=field_id)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class ConfigError(FormLogicError):
    """Raised when engine settings cannot be loaded or resolved."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class CatalogLoadError(FormLogicError):
    """Raised when a field catalog file cannot be read or validated."""

    def __init__(self, path: str, message: str):
        super().__init__(f"Failed to load catalog from {path}: {message}")
        self.path = path
