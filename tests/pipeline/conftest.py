import logging
from collections import namedtuple

import pytest

from hsmusic.data.things import Album, ArtTag, Artist, Track

Wiki = namedtuple("Wiki", ["data", "artist", "tag", "album", "showtime", "harlequin"])


@pytest.fixture
def wiki():
    """A small wiki: one album of two tracks, one artist, one tag. Not linked."""
    artist = Artist()
    artist.name = "Toby Fox"

    tag = ArtTag()
    tag.name = "Vriska"

    showtime = Track()
    showtime.name = "Showtime"
    showtime.artist_contribs = [{'who': "Toby Fox", 'what': None}]
    showtime.art_tags = ["Vriska"]
    showtime.commentary = "<i>Toby Fox:</i> An early one."

    harlequin = Track()
    harlequin.name = "Harlequin"
    harlequin.referenced_tracks = ["track:showtime"]

    album = Album()
    album.name = "Homestuck Vol. 1"
    album.color = '#123456'
    album.cover_artist_contribs = [{'who': "artist:toby-fox", 'what': None}]
    album.track_sections = [{'tracks': ["track:showtime", "track:harlequin"]}]

    data = {
        'album_data': [album],
        'artist_data': [artist],
        'track_data': [showtime, harlequin],
        'art_tag_data': [tag],
    }

    return Wiki(data, artist, tag, album, showtime, harlequin)


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
