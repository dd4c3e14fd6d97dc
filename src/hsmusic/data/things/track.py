"""Track: a single song, placed on an album through the album's sections."""

from hsmusic.data.cacheable_object import UpdateSpec
from hsmusic.data.composite import (
    Input,
    Step,
    composite_from,
    expose_dependency,
    expose_update_value_or_continue,
    raise_output_without_dependency,
    template_composite_from,
)
from hsmusic.data.validators import is_color
from hsmusic.util import find

from .art_tag import ArtTag
from .artist import Artist
from .thing import (
    Thing,
    additional_files,
    commentary,
    commentator_artists,
    contribs_present,
    contribution_list,
    directory,
    duration,
    name,
    reference_list,
    reverse_reference_list,
    simple_date,
    urls,
    wiki_data,
)


def _compute_album(continuation, d):
    myself = d[Input.myself()]
    album = next(
        (album for album in d['album_data']
         if any(track is myself for track in album.tracks)),
        None,
    )
    return continuation({'#album': album})


# The album whose tracks include this track, or None.
with_album = template_composite_from(
    annotation='with_album',

    outputs=['#album'],

    steps=lambda: [
        raise_output_without_dependency(
            dependency='album_data',
            mode=Input.value('empty'),
            output=Input.value({'#album': None}),
        ),

        Step(
            dependencies=[Input.myself(), 'album_data'],
            compute=_compute_album,
        ),
    ],
)


def _compute_property_from_album(continuation, d):
    album = d['#album']
    property_name = d[Input.of('property')]
    return continuation({
        f'#album.{property_name}': None if album is None else getattr(album, property_name),
    })


with_property_from_album = template_composite_from(
    annotation='with_property_from_album',

    inputs={
        'property': Input.static_value(type='string'),
    },

    outputs=lambda statics: [f"#album.{statics['property']}"],

    steps=lambda: [
        with_album(),

        Step(
            dependencies=['#album', Input.of('property')],
            compute=_compute_property_from_album,
        ),
    ],
)


class Track(Thing):
    reference_type = 'track'

    property_descriptors = {
        # Update & expose

        'name': name('Unnamed Track'),
        'directory': directory(),
        'duration': duration(),
        'urls': urls(),

        # Own color if set, else the album's.
        'color': composite_from(
            annotation='Track.color',

            update=UpdateSpec(validate=is_color),

            steps=[
                expose_update_value_or_continue(),
                with_property_from_album(property=Input.value('color')),
                expose_dependency(dependency='#album.color'),
            ],
        ),

        'date_first_released': simple_date(),

        'artist_contribs': contribution_list(),
        'contributor_contribs': contribution_list(),
        'cover_artist_contribs': contribution_list(),

        'referenced_tracks': reference_list(
            thing_class=Input.value('track'),
            data='track_data',
            find=find.track,
        ),

        'art_tags': reference_list(
            thing_class=ArtTag,
            data='art_tag_data',
            find=find.art_tag,
        ),

        'commentary': commentary(),
        'additional_files': additional_files(),

        # Update only

        'artist_data': wiki_data(Artist),
        'album_data': wiki_data('album'),
        'track_data': wiki_data('track'),
        'art_tag_data': wiki_data(ArtTag),

        # Expose only

        'has_cover_art': contribs_present(contribs='cover_artist_contribs'),
        'commentator_artists': commentator_artists(),

        'album': composite_from(
            annotation='Track.album',

            steps=[
                with_album(),
                expose_dependency(dependency='#album'),
            ],
        ),

        'referenced_by_tracks': reverse_reference_list(
            data='track_data',
            list=Input.value('referenced_tracks'),
        ),
    }
