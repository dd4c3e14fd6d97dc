"""Artist, including aliases that point at another artist."""

from hsmusic.data.cacheable_object import ExposeSpec, PropertyDescriptor, PropertyFlags, UpdateSpec
from hsmusic.data.composite import Input, composite_from, expose_dependency
from hsmusic.data.validators import is_name, validate_array_items, validate_reference
from hsmusic.util import find

from .thing import (
    Thing,
    directory,
    flag,
    name,
    reverse_reference_list,
    simple_string,
    urls,
    wiki_data,
    with_resolved_reference,
)


class Artist(Thing):
    reference_type = 'artist'

    property_descriptors = {
        # Update & expose

        'name': name('Unnamed Artist'),
        'directory': directory(),
        'urls': urls(),
        'context_notes': simple_string(),

        'alias_names': PropertyDescriptor(
            flags=PropertyFlags(update=True, expose=True),
            update=UpdateSpec(validate=validate_array_items(is_name)),
            expose=ExposeSpec(transform=lambda names, dependencies: [] if names is None else names),
        ),

        'is_alias': flag(False),

        'aliased_artist_ref': PropertyDescriptor(
            flags=PropertyFlags(update=True, expose=True),
            update=UpdateSpec(validate=validate_reference('artist')),
        ),

        # Update only

        'artist_data': wiki_data('artist'),
        'album_data': wiki_data('album'),
        'track_data': wiki_data('track'),

        # Expose only

        'aliased_artist': composite_from(
            annotation='Artist.aliased_artist',

            steps=[
                with_resolved_reference(
                    ref='aliased_artist_ref',
                    data='artist_data',
                    find=find.artist,
                ),

                expose_dependency(dependency='#resolved_reference'),
            ],
        ),

        'albums_as_commentator': reverse_reference_list(
            data='album_data',
            list=Input.value('commentator_artists'),
        ),

        'tracks_as_commentator': reverse_reference_list(
            data='track_data',
            list=Input.value('commentator_artists'),
        ),
    }
