"""Thing: base class for wiki data types, plus the shared property library.

Concrete things (albums, tracks, artists, art tags) are CacheableObjects
whose descriptors are built mostly from the factories below. Factories
returning plain descriptors cover simple fields; the composite ones resolve
references into other wiki data collections.

Several factories take a ``thing_class``. This may be the Thing subclass
itself or, where importing it would be circular (or the class is still
being defined), its reference type as ``Input.value('artist')``.
"""

import logging
import re
from typing import Optional

from hsmusic.contracts import NotFoundMode
from hsmusic.data.cacheable_object import (
    CacheableObject,
    ExposeSpec,
    PropertyDescriptor,
    PropertyFlags,
    UpdateSpec,
)
from hsmusic.data.composite import (
    Input,
    Step,
    composite_from,
    exit_without_dependency,
    expose_constant,
    expose_dependency,
    expose_dependency_or_continue,
    raise_output_without_dependency,
    template_composite_from,
    with_properties_from_list,
    with_result_of_availability_check,
)
from hsmusic.data.validators import (
    is_,
    is_additional_file_list,
    is_boolean,
    is_color,
    is_commentary,
    is_contribution_list,
    is_date,
    is_dimensions,
    is_directory,
    is_duration,
    is_file_extension,
    is_name,
    is_string,
    is_type,
    is_url,
    validate_array_items,
    validate_instance_of,
    validate_reference,
    validate_reference_list,
    validate_wiki_data,
)
from hsmusic.util import find
from hsmusic.util.sugar import filter_multiple_arrays, get_kebab_case, stitch_arrays, unique

logger = logging.getLogger(__name__)


class Thing(CacheableObject):
    """A wiki data object with a reference type, e.g. ``track``."""

    reference_type: Optional[str] = None

    def __repr__(self):
        cls_name = type(self).__name__
        descriptors = type(self).property_descriptors or {}

        text = cls_name
        if 'name' in descriptors and self.name:
            text += f' "{self.name}"'
        if 'directory' in descriptors and self.directory and self.reference_type:
            text += f" ({Thing.get_reference(self)})"
        return f"<{text}>"

    @staticmethod
    def get_reference(thing: "Thing") -> str:
        """Return the keyed reference ``"type:directory"`` for ``thing``."""
        reference_type = getattr(type(thing), 'reference_type', None)
        if not reference_type:
            raise TypeError(f"Passed Thing is {type(thing).__name__}, which provides no reference_type")

        if not thing.directory:
            raise TypeError(f"Passed {type(thing).__name__} is missing its directory")

        return f"{reference_type}:{thing.directory}"


def reference_type_of(thing_class) -> str:
    if isinstance(thing_class, str):
        return thing_class
    return thing_class.reference_type


def is_thing_class(value) -> bool:
    if isinstance(value, str):
        return is_directory(value)

    is_type(value, 'function')
    if not (isinstance(value, type) and issubclass(value, Thing) and value.reference_type):
        raise TypeError(f"Expected a Thing subclass with a reference_type, got {value!r}")
    return True


# =============================================================================
# Property descriptor factories
# =============================================================================

def _hybrid(validate=None, default=None, **expose) -> PropertyDescriptor:
    update = UpdateSpec(validate=validate) if default is None else UpdateSpec(validate=validate, default=default)
    return PropertyDescriptor(
        flags=PropertyFlags(update=True, expose=True),
        update=update,
        expose=ExposeSpec(**expose) if expose else None,
    )


def name(default_name: Optional[str] = None) -> PropertyDescriptor:
    return _hybrid(validate=is_name, default=default_name)


def color() -> PropertyDescriptor:
    return _hybrid(validate=is_color)


def directory() -> PropertyDescriptor:
    """Directory slug. Falls back to the kebab-cased ``name`` when unset."""
    def transform(value, dependencies):
        if value is not None:
            return value
        if dependencies['name'] is None:
            return None
        return get_kebab_case(dependencies['name'])

    return _hybrid(validate=is_directory, dependencies=['name'], transform=transform)


def urls() -> PropertyDescriptor:
    return _hybrid(
        validate=validate_array_items(is_url),
        transform=lambda value, dependencies: [] if value is None else value,
    )


def file_extension(default_file_extension: Optional[str] = None) -> PropertyDescriptor:
    """A file extension, or ``default_file_extension`` when unset."""
    return _hybrid(
        validate=is_file_extension,
        transform=lambda value, dependencies: default_file_extension if value is None else value,
    )


def dimensions() -> PropertyDescriptor:
    """Width and height as a two-item list of positive integers."""
    return _hybrid(validate=is_dimensions)


def duration() -> PropertyDescriptor:
    """A number of seconds, possibly fractional, never negative."""
    return _hybrid(validate=is_duration)


def flag(default_value: bool = False) -> PropertyDescriptor:
    if not isinstance(default_value, bool):
        raise TypeError("Always set explicit defaults for flags!")

    return PropertyDescriptor(
        flags=PropertyFlags(update=True, expose=True),
        update=UpdateSpec(validate=is_boolean, default=default_value),
    )


def simple_date() -> PropertyDescriptor:
    return _hybrid(validate=is_date)


def simple_string() -> PropertyDescriptor:
    return _hybrid(validate=is_string)


def commentary() -> PropertyDescriptor:
    return _hybrid(validate=is_commentary)


def additional_files() -> PropertyDescriptor:
    """Bonus files grouped under titles::

        [{'title': 'Booklet', 'files': ['Booklet.pdf']},
         {'title': 'Wallpaper', 'description': 'Cool Wallpaper!',
          'files': ['1440x900.png', '1920x1080.png']}]
    """
    return _hybrid(
        validate=is_additional_file_list,
        transform=lambda value, dependencies: [] if value is None else value,
    )


def external_function() -> PropertyDescriptor:
    # Only used as a dependency of other properties, so left unexposed.
    return PropertyDescriptor(
        flags=PropertyFlags(update=True),
        update=UpdateSpec(validate=lambda value: is_type(value, 'function')),
    )


def wiki_data(thing_class) -> PropertyDescriptor:
    """A sibling collection such as ``artist_data``, set when linking."""
    if isinstance(thing_class, str):
        validate = validate_wiki_data(reference_type=thing_class)
    else:
        validate = validate_array_items(validate_instance_of(thing_class))

    return PropertyDescriptor(
        flags=PropertyFlags(update=True),
        update=UpdateSpec(validate=validate),
    )


def input_wiki_data(reference_type: str = '', allow_mixed_types: bool = False) -> Input:
    return Input(
        validate=validate_wiki_data(reference_type=reference_type, allow_mixed_types=allow_mixed_types),
        accepts_null=True,
    )


is_not_found_mode = is_(*(mode.value for mode in NotFoundMode))


# =============================================================================
# Compositional utilities
# =============================================================================

def _compute_resolved_reference(continuation, d):
    match = d[Input.of('find')](d[Input.of('ref')], d[Input.of('data')], mode='quiet')

    if match is None and d[Input.of('not_found_mode')] == NotFoundMode.EXIT:
        return continuation.exit(None)

    return continuation.raise_output({'#resolved_reference': match})


# Resolves one reference with ``find`` against ``data``. A None reference
# gives None without calling ``find``; None data exits the property with None.
with_resolved_reference = template_composite_from(
    annotation='with_resolved_reference',

    inputs={
        'ref': Input(type='string', accepts_null=True),
        'data': input_wiki_data(),
        'find': Input(type='function'),
        'not_found_mode': Input(validate=is_('null', 'exit'), default='null'),
    },

    outputs=['#resolved_reference'],

    steps=lambda: [
        raise_output_without_dependency(
            dependency=Input.of('ref'),
            output=Input.value({'#resolved_reference': None}),
        ),

        exit_without_dependency(dependency=Input.of('data')),

        Step(
            dependencies=[
                Input.of('ref'),
                Input.of('data'),
                Input.of('find'),
                Input.of('not_found_mode'),
            ],
            compute=_compute_resolved_reference,
        ),
    ],
)


def _compute_reference_matches(continuation, d):
    find_function = d[Input.of('find')]
    data = d[Input.of('data')]
    return continuation({
        '#matches': [find_function(ref, data, mode='quiet') for ref in d[Input.of('list')]],
    })


def _compute_resolved_reference_list(continuation, d):
    matches = d['#matches']

    if all(match is not None for match in matches):
        return continuation.raise_output({'#resolved_reference_list': matches})

    mode = d[Input.of('not_found_mode')]
    if mode == NotFoundMode.EXIT:
        return continuation.exit([])
    if mode == NotFoundMode.FILTER:
        return continuation.raise_output({
            '#resolved_reference_list': [match for match in matches if match is not None],
        })
    return continuation.raise_output({'#resolved_reference_list': matches})


# Resolves a list of references the same way. None data exits with [] (even
# for an empty list). Unmatched references are dropped by default; see
# NotFoundMode for the alternatives.
with_resolved_reference_list = template_composite_from(
    annotation='with_resolved_reference_list',

    inputs={
        'list': Input(validate=validate_array_items(is_string), accepts_null=True),
        'data': input_wiki_data(),
        'find': Input(type='function'),
        'not_found_mode': Input(validate=is_not_found_mode, default='filter'),
    },

    outputs=['#resolved_reference_list'],

    steps=lambda: [
        exit_without_dependency(
            dependency=Input.of('data'),
            value=Input.value([]),
        ),

        raise_output_without_dependency(
            dependency=Input.of('list'),
            mode=Input.value('empty'),
            output=Input.value({'#resolved_reference_list': []}),
        ),

        Step(
            dependencies=[Input.of('list'), Input.of('data'), Input.of('find')],
            compute=_compute_reference_matches,
        ),

        Step(
            dependencies=['#matches', Input.of('not_found_mode')],
            compute=_compute_resolved_reference_list,
        ),
    ],
)


def _compute_resolved_contribs(continuation, d):
    who = d['#contribs.who']
    what = d['#contribs.what']

    filter_multiple_arrays(who, what, predicate=lambda who, what: who is not None)

    return continuation({
        '#resolved_contribs': stitch_arrays({'who': who, 'what': what}),
    })


# Resolves contributions ({'who': ref, 'what': ...}) against artist_data.
# Entries whose 'who' doesn't match an artist are dropped, and so is
# everything when artist_data isn't set.
with_resolved_contribs = template_composite_from(
    annotation='with_resolved_contribs',

    inputs={
        'source': Input(validate=is_contribution_list, accepts_null=True),
        # 'filter' would drop unmatched artists before they're paired up with
        # their 'what', so only the modes which keep positions are allowed.
        'not_found_mode': Input(validate=is_('exit', 'null'), default='null'),
    },

    outputs=['#resolved_contribs'],

    steps=lambda: [
        raise_output_without_dependency(
            dependency=Input.of('source'),
            mode=Input.value('empty'),
            output=Input.value({'#resolved_contribs': []}),
        ),

        # No artist data, nothing to resolve against.
        raise_output_without_dependency(
            dependency='artist_data',
            output=Input.value({'#resolved_contribs': []}),
        ),

        with_properties_from_list(
            list=Input.of('source'),
            properties=Input.value(['who', 'what']),
            prefix=Input.value('#contribs'),
        ),

        with_resolved_reference_list(
            list='#contribs.who',
            data='artist_data',
            find=find.artist,
            not_found_mode=Input.of('not_found_mode'),
        ).outputs({
            '#resolved_reference_list': '#contribs.who',
        }),

        Step(
            dependencies=['#contribs.who', '#contribs.what'],
            compute=_compute_resolved_contribs,
        ),
    ],
)


# Exits with ``value`` if the contributions resolve to nothing, so that later
# steps only run when someone is actually credited.
exit_without_contribs = template_composite_from(
    annotation='exit_without_contribs',

    inputs={
        'contribs': Input(validate=is_contribution_list, accepts_null=True),
        'value': Input(accepts_null=True),
    },

    steps=lambda: [
        with_resolved_contribs(source=Input.of('contribs')),

        with_result_of_availability_check(
            source='#resolved_contribs',
            mode=Input.value('empty'),
        ),

        Step(
            dependencies=['#availability', Input.of('value')],
            compute=lambda continuation, d: (
                continuation()
                if d['#availability']
                else continuation.exit(d[Input.of('value')])
            ),
        ),
    ],
)


def _compute_reverse_reference_list(continuation, d):
    myself = d[Input.myself()]
    property_name = d[Input.of('list')]

    return continuation({
        '#reverse_reference_list': [
            thing for thing in d[Input.of('data')]
            if any(item is myself for item in getattr(thing, property_name))
        ],
    })


# Things in ``data`` whose ``list`` property includes this thing, or an empty
# list when ``data`` isn't set. Only this template is cut short then, so a
# caller combining several collections keeps the others.
with_reverse_reference_list = template_composite_from(
    annotation='with_reverse_reference_list',

    inputs={
        'data': input_wiki_data(),
        'list': Input(type='string'),
    },

    outputs=['#reverse_reference_list'],

    steps=lambda: [
        raise_output_without_dependency(
            dependency=Input.of('data'),
            output=Input.value({'#reverse_reference_list': []}),
        ),

        Step(
            dependencies=[Input.myself(), Input.of('data'), Input.of('list')],
            compute=_compute_reverse_reference_list,
        ),
    ],
)


# =============================================================================
# Composite property factories
# =============================================================================

def contribution_list() -> PropertyDescriptor:
    """Contributions as written, exposed with each 'who' resolved to an Artist.

    Update value::

        [{'who': 'Artist Name', 'what': 'Viola'},
         {'who': 'artist:john-cena', 'what': None}]

    Depends on an ``artist_data`` property on the same thing.
    """
    return composite_from(
        annotation='contribution_list',

        update=UpdateSpec(validate=is_contribution_list),

        steps=[
            with_resolved_contribs(source=Input.update_value()),
            expose_dependency_or_continue(dependency='#resolved_contribs'),
            expose_constant(value=Input.value([])),
        ],
    )


def _reference_list_update(statics) -> UpdateSpec:
    return UpdateSpec(validate=validate_reference_list(reference_type_of(statics['thing_class'])))


def _single_reference_update(statics) -> UpdateSpec:
    return UpdateSpec(validate=validate_reference(reference_type_of(statics['thing_class'])))


reference_list = template_composite_from(
    annotation='reference_list',

    compose=False,

    inputs={
        'thing_class': Input.static_value(validate=is_thing_class),
        'data': input_wiki_data(),
        'find': Input(type='function'),
    },

    update=_reference_list_update,

    steps=lambda: [
        with_resolved_reference_list(
            list=Input.update_value(),
            data=Input.of('data'),
            find=Input.of('find'),
        ),

        expose_dependency(dependency='#resolved_reference_list'),
    ],
)

single_reference = template_composite_from(
    annotation='single_reference',

    compose=False,

    inputs={
        'thing_class': Input.static_value(validate=is_thing_class),
        'data': input_wiki_data(),
        'find': Input(type='function'),
    },

    update=_single_reference_update,

    steps=lambda: [
        with_resolved_reference(
            ref=Input.update_value(),
            data=Input.of('data'),
            find=Input.of('find'),
        ),

        expose_dependency(dependency='#resolved_reference'),
    ],
)

# True when the named contribution list resolves to anyone.
contribs_present = template_composite_from(
    annotation='contribs_present',

    compose=False,

    inputs={
        'contribs': Input.static_dependency(validate=is_contribution_list, accepts_null=True),
    },

    steps=lambda: [
        with_resolved_contribs(source=Input.of('contribs')),

        with_result_of_availability_check(
            source='#resolved_contribs',
            mode=Input.value('empty'),
        ),

        expose_dependency(dependency='#availability'),
    ],
)

# "Reverses" a reference list stored on other things: tracks list their
# referenced_tracks, so referenced_by_tracks is the reverse of that.
reverse_reference_list = template_composite_from(
    annotation='reverse_reference_list',

    compose=False,

    inputs={
        'data': input_wiki_data(),
        'list': Input.static_value(type='string'),
    },

    steps=lambda: [
        with_reverse_reference_list(
            data=Input.of('data'),
            list=Input.of('list'),
        ),

        expose_dependency(dependency='#reverse_reference_list'),
    ],
)

_COMMENTATOR_PATTERN = re.compile(r'<i>(?P<who>.*?):</i>')


def _compute_artist_refs(continuation, d):
    text = re.sub(r'</?b>', '', d['commentary'])
    return continuation({
        '#artist_refs': [match.group('who') for match in _COMMENTATOR_PATTERN.finditer(text)],
    })


# Artists credited as speakers in commentary (``<i>Name:</i>`` markup),
# resolved against artist_data. Names that match no artist are dropped.
commentator_artists = template_composite_from(
    annotation='commentator_artists',

    compose=False,

    steps=lambda: [
        exit_without_dependency(
            dependency='commentary',
            mode=Input.value('falsy'),
            value=Input.value([]),
        ),

        Step(
            dependencies=['commentary'],
            compute=_compute_artist_refs,
        ),

        with_resolved_reference_list(
            list='#artist_refs',
            data='artist_data',
            find=find.artist,
        ).outputs({
            '#resolved_reference_list': '#artists',
        }),

        Step(
            dependencies=['#artists'],
            compute=lambda continuation, d: continuation.exit(unique(d['#artists'])),
        ),
    ],
)
