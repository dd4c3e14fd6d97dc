"""Small list, mapping and string helpers shared across the data layer."""

import re
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence

__all__ = [
    'compare_arrays',
    'empty',
    'escape_regex',
    'filter_multiple_arrays',
    'get_kebab_case',
    'split_array',
    'stitch_arrays',
    'unique',
    'with_entries',
]


def unique(items: Iterable) -> list:
    """Drop repeated items, keeping the first occurrence of each (by identity for things)."""
    seen = set()
    result = []
    for item in items:
        key = _identity_key(item)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def _identity_key(item):
    try:
        hash(item)
    except TypeError:
        return ('id', id(item))
    return ('value', item)


def empty(value) -> bool:
    """True for None and for zero-length sequences, mappings and strings."""
    if value is None:
        return True
    try:
        return len(value) == 0
    except TypeError:
        return False


def compare_arrays(first: Sequence, second: Sequence, check_order: bool = True) -> bool:
    if len(first) != len(second):
        return False
    if check_order:
        return all(a is b or a == b for a, b in zip(first, second))
    return all(any(a is b or a == b for b in second) for a in first)


def with_entries(mapping: Mapping, fn: Callable[[list], Iterable]) -> dict:
    """Rebuild ``mapping`` from ``fn(list of (key, value) pairs)``."""
    return dict(fn(list(mapping.items())))


def split_array(items: Sequence, fn: Callable[[Any, int, Sequence], bool]) -> Iterator[list]:
    """Yield runs of ``items``, starting a new run wherever ``fn`` is true."""
    current = []
    for index, item in enumerate(items):
        if fn(item, index, items) and current:
            yield current
            current = []
        current.append(item)
    if current:
        yield current


def stitch_arrays(columns: Mapping[str, Sequence]) -> list[dict]:
    """Zip same-length lists into a list of dicts keyed by column name.

    >>> stitch_arrays({'who': ['a', 'b'], 'what': [None, 'bass']})
    [{'who': 'a', 'what': None}, {'who': 'b', 'what': 'bass'}]
    """
    keys = list(columns)
    lengths = {len(columns[key]) for key in keys}
    if len(lengths) > 1:
        raise ValueError(f"Expected lists of one length, got lengths {sorted(lengths)}")

    return [dict(zip(keys, row)) for row in zip(*(columns[key] for key in keys))]


def filter_multiple_arrays(*arrays: list, predicate: Callable[..., bool]) -> None:
    """Filter several same-length lists in place, jointly.

    ``predicate`` gets the items at one index from every list; where it is
    false, that index is removed from all of them so they stay aligned.
    """
    lengths = {len(array) for array in arrays}
    if len(lengths) > 1:
        raise ValueError(f"Expected lists of one length, got lengths {sorted(lengths)}")

    for index in reversed(range(len(arrays[0]) if arrays else 0)):
        if not predicate(*(array[index] for array in arrays)):
            for array in arrays:
                del array[index]


def escape_regex(string: str) -> str:
    return re.escape(string)


def get_kebab_case(name: str) -> str:
    """Slug a display name into a directory, e.g. "Homestuck Vol. 5" -> "homestuck-vol-5"."""
    slug = '-'.join(name.split(' ')).lower()
    slug = slug.replace('&', 'and')
    slug = re.sub(r'[^a-z0-9\-]', '', slug)
    slug = re.sub(r'-{2,}', '-', slug)
    slug = re.sub(r'^-+|-+$', '', slug)
    return slug
