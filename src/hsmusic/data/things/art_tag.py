"""ArtTag: tags on album and track artwork.

The short name drops a ``cw:`` prefix from the name. ``tagged_in_things``
lists everything tagged with it, albums first.
"""

import re

from hsmusic.data.cacheable_object import ExposeSpec, PropertyDescriptor, PropertyFlags, UpdateSpec
from hsmusic.data.composite import Input, Step, composite_from
from hsmusic.data.validators import is_name

from .thing import (
    Thing,
    color,
    directory,
    flag,
    name,
    wiki_data,
    with_reverse_reference_list,
)

_CONTENT_WARNING_PREFIX = re.compile(r'^cw:\s*')


def _short_name(value, dependencies):
    if value is not None:
        return value
    if dependencies['name'] is None:
        return None
    return _CONTENT_WARNING_PREFIX.sub('', dependencies['name'])


class ArtTag(Thing):
    reference_type = 'tag'

    property_descriptors = {
        # Update & expose

        'name': name('Unnamed Art Tag'),
        'directory': directory(),
        'color': color(),
        'is_content_warning': flag(False),

        'name_short': PropertyDescriptor(
            flags=PropertyFlags(update=True, expose=True),
            update=UpdateSpec(validate=is_name),
            expose=ExposeSpec(dependencies=['name'], transform=_short_name),
        ),

        # Update only

        'album_data': wiki_data('album'),
        'track_data': wiki_data('track'),

        # Expose only

        # Albums first, then tracks.
        'tagged_in_things': composite_from(
            annotation='ArtTag.tagged_in_things',

            steps=[
                with_reverse_reference_list(
                    data='album_data',
                    list=Input.value('art_tags'),
                ).outputs({
                    '#reverse_reference_list': '#albums',
                }),

                with_reverse_reference_list(
                    data='track_data',
                    list=Input.value('art_tags'),
                ).outputs({
                    '#reverse_reference_list': '#tracks',
                }),

                Step(
                    dependencies=['#albums', '#tracks'],
                    compute=lambda continuation, d: continuation.exit(d['#albums'] + d['#tracks']),
                ),
            ],
        ),
    }
