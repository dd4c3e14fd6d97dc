"""Centralized failure types for the property system.

Definition errors fail fast, loud, and once. Runtime input problems raise
the narrowest error type that describes them, so callers can tell a bad
descriptor apart from bad source data.
"""

from enum import Enum


class NotFoundMode(str, Enum):
    """Policy for references that don't resolve to anything.

    EXIT: Short-circuit the dependent computation with its early-exit value
    FILTER: Drop the unresolved entries, keeping order of the rest
    NULL: Keep the unresolved entries in place as None
    """
    EXIT = "exit"
    FILTER = "filter"
    NULL = "null"


class DefinitionError(RuntimeError):
    """Raised when a property descriptor or composite is malformed.

    This indicates a bug in a schema definition, not bad data. It means a
    descriptor or step did not follow the rules of the property system.

    Key distinction:
    - DefinitionError: Programmer error in a descriptor or composite
    - PropertyValidationError: Source data rejected by a validator
    - CompositeInputError: A composite was handed a value it can't accept
    """
    pass


class InvalidValueError(TypeError):
    """Raised when a property is written with MISSING or deleted."""
    pass


class PropertyValidationError(ValueError):
    """Raised when an update write is rejected by the property's validator.

    The stored value is left unchanged. The validator's own exception, if
    any, is chained as ``__cause__``.
    """

    def __init__(self, property_name: str, old_value, new_value, reason: str):
        self.property = property_name
        self.old_value = old_value
        self.new_value = new_value
        self.reason = reason
        super().__init__(
            f"Property {property_name} ({old_value!r} -> {new_value!r}): {reason}"
        )


class UndeclaredPropertyError(AttributeError):
    """Raised when reading or writing a name with no property descriptor."""

    def __init__(self, class_name: str, property_name: str, message: str = ""):
        self.class_name = class_name
        self.property = property_name
        super().__init__(
            message or f"{class_name} has no property {property_name!r}"
        )


class CompositeInputError(TypeError):
    """Raised when a composite input receives a value it doesn't accept."""
    pass
