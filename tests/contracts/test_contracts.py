"""Tests for property-system contracts and error types."""

import pytest

pytestmark = pytest.mark.unit

from hsmusic.contracts import (
    CompositeInputError,
    DefinitionError,
    InvalidValueError,
    NotFoundMode,
    PropertyValidationError,
    UndeclaredPropertyError,
    require,
)


class TestRequire:
    """Test the require() enforcement helper."""

    def test_require_passes_when_condition_true(self):
        """require() is silent for a true condition."""
        require(True, "never raised")

    def test_require_raises_definition_error(self):
        """require() raises DefinitionError carrying the message."""
        with pytest.raises(DefinitionError, match="Album.tracks: bad wiring"):
            require(False, "Album.tracks: bad wiring")


class TestErrorTypes:
    """Test the error hierarchy callers rely on."""

    def test_definition_error_is_runtime_error(self):
        """Definition errors are RuntimeErrors."""
        assert issubclass(DefinitionError, RuntimeError)

    def test_invalid_value_error_is_type_error(self):
        """Writing MISSING is a TypeError."""
        assert issubclass(InvalidValueError, TypeError)

    def test_composite_input_error_is_type_error(self):
        """Bad composite inputs are TypeErrors."""
        assert issubclass(CompositeInputError, TypeError)

    def test_undeclared_property_error_is_attribute_error(self):
        """Undeclared access is an AttributeError, so hasattr() works."""
        error = UndeclaredPropertyError("Album", "nmae")

        assert isinstance(error, AttributeError)
        assert error.class_name == "Album"
        assert error.property == "nmae"
        assert "Album has no property 'nmae'" in str(error)

    def test_property_validation_error_names_values(self):
        """Validation errors name the property and both values."""
        error = PropertyValidationError("color", "#123456", "blue", "Malformed hex color")

        assert isinstance(error, ValueError)
        assert error.property == "color"
        assert error.old_value == "#123456"
        assert error.new_value == "blue"
        assert str(error) == "Property color ('#123456' -> 'blue'): Malformed hex color"


class TestNotFoundMode:
    """Test the not-found policy enum."""

    def test_values_compare_equal_to_strings(self):
        """Modes compare equal to their plain string values."""
        assert NotFoundMode.EXIT == "exit"
        assert NotFoundMode.FILTER == "filter"
        assert NotFoundMode.NULL == "null"

    def test_lookup_by_value(self):
        """Modes can be looked up from config strings."""
        assert NotFoundMode("filter") is NotFoundMode.FILTER
