"""Wiki data types.

- thing: Thing base class and the shared property library
- album, track, artist, art_tag: Concrete things
"""

from hsmusic.data.things.thing import Thing
from hsmusic.data.things.artist import Artist
from hsmusic.data.things.art_tag import ArtTag
from hsmusic.data.things.track import Track
from hsmusic.data.things.album import Album

# Reference type -> class, e.g. 'track' -> Track
thing_classes = {
    cls.reference_type: cls
    for cls in (Album, ArtTag, Artist, Track)
}

__all__ = [
    "Album",
    "ArtTag",
    "Artist",
    "Thing",
    "Track",
    "thing_classes",
]
