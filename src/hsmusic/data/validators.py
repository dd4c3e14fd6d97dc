"""Validation predicates for update properties and composite inputs.

Every validator follows one protocol: return True for an acceptable value,
raise TypeError or ValueError (with a message saying why) otherwise. They
are stateless and reusable; factories such as validate_array_items() build
a validator from other validators.
"""

import re
from datetime import date
from urllib.parse import urlparse

__all__ = [
    'is_',
    'is_additional_file_list',
    'is_boolean',
    'is_color',
    'is_commentary',
    'is_contribution',
    'is_contribution_list',
    'is_date',
    'is_dimensions',
    'is_directory',
    'is_duration',
    'is_file_extension',
    'is_name',
    'is_number',
    'is_string',
    'is_type',
    'is_url',
    'validate_array_items',
    'validate_instance_of',
    'validate_reference',
    'validate_reference_list',
    'validate_wiki_data',
]

_TYPE_CHECKS = {
    'string': lambda v: isinstance(v, str),
    'number': lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    'boolean': lambda v: isinstance(v, bool),
    'function': callable,
    'array': lambda v: isinstance(v, (list, tuple)),
    'object': lambda v: isinstance(v, dict),
}

_COLOR_PATTERN = re.compile(r'^#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$')
_DIRECTORY_PATTERN = re.compile(r'[^a-zA-Z0-9_\-]')
_REFERENCE_PATTERN = re.compile(r'^(?:(?P<key>[a-z\-]+):(?=\S))?(?P<ref>.*)$')


def _type_name(value) -> str:
    return 'None' if value is None else type(value).__name__


def is_type(value, type_name: str) -> bool:
    """Check ``value`` against a loose type name (string, number, function, ...)."""
    check = _TYPE_CHECKS.get(type_name)
    if check is None:
        raise ValueError(f"Unknown type name {type_name!r}")
    if not check(value):
        raise TypeError(f"Expected {type_name}, got {_type_name(value)}")
    return True


def is_boolean(value) -> bool:
    return is_type(value, 'boolean')


def is_number(value) -> bool:
    return is_type(value, 'number')


def is_string(value) -> bool:
    return is_type(value, 'string')


def is_(*values):
    """Build a validator accepting exactly one of ``values``."""
    def validate(value):
        if value not in values:
            listed = ', '.join(repr(v) for v in values)
            raise ValueError(f"Expected one of {listed}, got {value!r}")
        return True

    return validate


def is_name(value) -> bool:
    is_string(value)
    if not value.strip():
        raise ValueError("Expected a non-empty name")
    return True


def is_color(value) -> bool:
    is_string(value)
    if not _COLOR_PATTERN.match(value):
        raise ValueError(f"Malformed hex color: {value!r}")
    return True


def is_directory(value) -> bool:
    is_string(value)
    invalid = _DIRECTORY_PATTERN.search(value)
    if invalid:
        raise ValueError(f"Invalid character {invalid.group()!r} in directory {value!r}")
    return True


def is_url(value) -> bool:
    is_string(value)
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Expected an absolute URL, got {value!r}")
    return True


def is_file_extension(value) -> bool:
    is_string(value)
    if value.startswith('.'):
        raise ValueError(f"File extension should omit the leading dot: {value!r}")
    if '/' in value:
        raise ValueError(f"File extension may not contain '/': {value!r}")
    return True


def is_date(value) -> bool:
    if not isinstance(value, date):
        raise TypeError(f"Expected a date, got {_type_name(value)}")
    return True


def is_duration(value) -> bool:
    is_number(value)
    if value < 0:
        raise ValueError(f"Expected a duration of at least zero seconds, got {value}")
    return True


def is_dimensions(value) -> bool:
    """Width and height, as a two-item list of positive integers (or None)."""
    is_type(value, 'array')
    if len(value) != 2:
        raise ValueError(f"Expected two dimensions, got {len(value)}")
    for dimension in value:
        if dimension is None:
            continue
        if not isinstance(dimension, int) or isinstance(dimension, bool) or dimension <= 0:
            raise ValueError(f"Expected a positive integer dimension, got {dimension!r}")
    return True


def is_commentary(value) -> bool:
    return is_string(value)


def validate_array_items(validate_item):
    """Build a validator applying ``validate_item`` to every list item.

    The first failing item is reported with its index.
    """
    def validate(value):
        is_type(value, 'array')
        for index, item in enumerate(value):
            try:
                result = validate_item(item)
            except (TypeError, ValueError) as exc:
                raise type(exc)(f"Error at index {index}: {exc}") from exc
            if result is not True:
                raise ValueError(f"Error at index {index}: validation failed for {item!r}")
        return True

    return validate


def _validate_keys(value: dict, allowed: set, required: set) -> None:
    extra = set(value) - allowed
    if extra:
        raise ValueError(f"Unexpected keys: {', '.join(sorted(extra))}")
    missing = required - set(value)
    if missing:
        raise ValueError(f"Missing keys: {', '.join(sorted(missing))}")


def is_contribution(value) -> bool:
    """A single ``{'who': ref, 'what': str | None}`` credit."""
    is_type(value, 'object')
    _validate_keys(value, {'who', 'what'}, {'who'})
    is_string(value['who'])
    if value.get('what') is not None:
        is_string(value['what'])
    return True


is_contribution_list = validate_array_items(is_contribution)


def _is_additional_file_group(value) -> bool:
    is_type(value, 'object')
    _validate_keys(value, {'title', 'description', 'files'}, {'title', 'files'})
    is_string(value['title'])
    if value.get('description') is not None:
        is_string(value['description'])
    validate_array_items(is_string)(value['files'])
    return True


is_additional_file_list = validate_array_items(_is_additional_file_group)


def validate_instance_of(cls):
    """Build a validator accepting instances of ``cls``."""
    def validate(value):
        if not isinstance(value, cls):
            raise TypeError(f"Expected {cls.__name__}, got {_type_name(value)}")
        return True

    return validate


def validate_reference(reference_type: str = ''):
    """Build a validator for a ``"type:directory"`` or bare-name reference.

    A keyed reference must use ``reference_type`` (when given) and carry a
    valid directory.
    """
    def validate(value):
        is_string(value)
        match = _REFERENCE_PATTERN.match(value)
        key, ref = match.group('key'), match.group('ref')

        if not ref.strip():
            raise ValueError(f"Reference {value!r} is empty")

        if key is not None:
            if reference_type and key != reference_type:
                raise ValueError(
                    f"Expected reference of type {reference_type!r}, got {key!r}")
            is_directory(ref)

        return True

    return validate


def validate_reference_list(reference_type: str = ''):
    return validate_array_items(validate_reference(reference_type))


def validate_wiki_data(reference_type: str = '', allow_mixed_types: bool = False):
    """Build a validator for a list of wiki things (``album_data`` and the like).

    With ``reference_type`` set, every item's class must use that type.
    Otherwise all items must share one class unless ``allow_mixed_types``.
    """
    def validate(value):
        is_type(value, 'array')

        seen_types = set()
        for index, item in enumerate(value):
            item_type = getattr(type(item), 'reference_type', None)
            if item_type is None:
                raise TypeError(f"Error at index {index}: expected a Thing, got {_type_name(item)}")
            if reference_type and item_type != reference_type:
                raise TypeError(
                    f"Error at index {index}: expected {reference_type!r} thing, got {item_type!r}")
            seen_types.add(type(item))

        if len(seen_types) > 1 and not allow_mixed_types:
            names = ', '.join(sorted(t.__name__ for t in seen_types))
            raise TypeError(f"Expected only one type of thing, got {names}")

        return True

    return validate
