"""Album: a release, its track sections and cover art.

Tracks are listed through ``track_sections``, each section a run of track
references with its own name and color. An album's cover art date falls
back to its release date, and only applies when cover artists are
credited.
"""

from hsmusic.data.cacheable_object import UpdateSpec
from hsmusic.data.composite import (
    Input,
    Step,
    composite_from,
    exit_without_dependency,
    exit_without_update_value,
    expose_constant,
    expose_dependency,
    expose_update_value_or_continue,
    fill_missing_list_items,
    with_properties_from_list,
)
from hsmusic.data.validators import (
    is_boolean,
    is_color,
    is_date,
    is_file_extension,
    is_name,
    is_type,
    validate_array_items,
    validate_reference_list,
)
from hsmusic.util import find
from hsmusic.util.sugar import stitch_arrays

from .art_tag import ArtTag
from .artist import Artist
from .thing import (
    Thing,
    additional_files,
    color,
    commentary,
    commentator_artists,
    contribs_present,
    contribution_list,
    directory,
    exit_without_contribs,
    name,
    reference_list,
    simple_date,
    urls,
    wiki_data,
    with_resolved_reference_list,
)
from .track import Track

TRACK_SECTION_PROPERTIES = (
    'name',
    'color',
    'date_originally_released',
    'is_default_track_section',
    'tracks',
)

_TRACK_SECTION_CHECKS = {
    'name': is_name,
    'color': is_color,
    'date_originally_released': is_date,
    'is_default_track_section': is_boolean,
    'tracks': validate_reference_list('track'),
}


def is_track_section(value) -> bool:
    """One ``{'tracks': [...refs], 'name': ..., 'color': ...}`` section; only tracks is required."""
    is_type(value, 'object')

    extra = set(value) - set(TRACK_SECTION_PROPERTIES)
    if extra:
        raise ValueError(f"Unexpected keys: {', '.join(sorted(extra))}")
    if 'tracks' not in value:
        raise ValueError("Missing keys: tracks")

    for key, check in _TRACK_SECTION_CHECKS.items():
        if value.get(key) is not None:
            check(value[key])
    return True


is_track_section_list = validate_array_items(is_track_section)


def _compute_section_tracks(continuation, d):
    track_data = d['track_data']

    tracks = []
    start_indices = []
    start_index = 0

    for refs in d['#sections.tracks']:
        matches = (find.track(ref, track_data, mode='quiet') for ref in refs or [])
        section_tracks = [track for track in matches if track is not None]

        tracks.append(section_tracks)
        start_indices.append(start_index)
        start_index += len(section_tracks)

    return continuation({
        '#sections.tracks': tracks,
        '#sections.start_index': start_indices,
    })


def _compute_track_sections(continuation, d):
    return continuation.exit(stitch_arrays({
        'name': d['#sections.name'],
        'color': d['#sections.color'],
        'date_originally_released': d['#sections.date_originally_released'],
        'is_default_track_section': d['#sections.is_default_track_section'],
        'tracks': d['#sections.tracks'],
        'start_index': d['#sections.start_index'],
    }))


def _flatten_track_refs(continuation, d):
    return continuation({
        '#track_refs': [
            ref
            for section in d['track_sections']
            for ref in section.get('tracks') or []
        ],
    })


class Album(Thing):
    reference_type = 'album'

    property_descriptors = {
        # Update & expose

        'name': name('Unnamed Album'),
        'directory': directory(),
        'color': color(),
        'urls': urls(),

        'date': simple_date(),

        # Only meaningful with cover art: None unless cover artists resolve,
        # then own value, else the album's release date.
        'cover_art_date': composite_from(
            annotation='Album.cover_art_date',

            update=UpdateSpec(validate=is_date),

            steps=[
                exit_without_contribs(contribs='cover_artist_contribs'),
                expose_update_value_or_continue(),
                expose_dependency(dependency='date'),
            ],
        ),

        'cover_art_file_extension': composite_from(
            annotation='Album.cover_art_file_extension',

            update=UpdateSpec(validate=is_file_extension),

            steps=[
                exit_without_contribs(contribs='cover_artist_contribs'),
                expose_update_value_or_continue(),
                expose_constant(value=Input.value('jpg')),
            ],
        ),

        'artist_contribs': contribution_list(),
        'cover_artist_contribs': contribution_list(),

        'track_sections': composite_from(
            annotation='Album.track_sections',

            update=UpdateSpec(validate=is_track_section_list),

            steps=[
                exit_without_dependency(
                    dependency='track_data',
                    value=Input.value([]),
                ),

                exit_without_update_value(
                    mode=Input.value('empty'),
                    value=Input.value([]),
                ),

                with_properties_from_list(
                    list=Input.update_value(),
                    properties=Input.value(list(TRACK_SECTION_PROPERTIES)),
                    prefix=Input.value('#sections'),
                ),

                fill_missing_list_items(list='#sections.color', fill='color'),
                fill_missing_list_items(list='#sections.is_default_track_section', fill=False),

                Step(
                    dependencies=['#sections.tracks', 'track_data'],
                    compute=_compute_section_tracks,
                ),

                Step(
                    dependencies=[f'#sections.{key}' for key in TRACK_SECTION_PROPERTIES]
                                 + ['#sections.start_index'],
                    compute=_compute_track_sections,
                ),
            ],
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
        'track_data': wiki_data(Track),
        'art_tag_data': wiki_data(ArtTag),

        # Expose only

        'has_cover_art': contribs_present(contribs='cover_artist_contribs'),
        'commentator_artists': commentator_artists(),

        # Every section's tracks in order, unmatched references dropped.
        'tracks': composite_from(
            annotation='Album.tracks',

            steps=[
                exit_without_dependency(
                    dependency='track_sections',
                    mode=Input.value('empty'),
                    value=Input.value([]),
                ),

                Step(
                    dependencies=['track_sections'],
                    compute=_flatten_track_refs,
                ),

                with_resolved_reference_list(
                    list='#track_refs',
                    data='track_data',
                    find=find.track,
                ),

                expose_dependency(dependency='#resolved_reference_list'),
            ],
        ),
    }
