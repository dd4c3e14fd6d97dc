"""Tests for Track."""

import pytest

pytestmark = pytest.mark.unit

from hsmusic.contracts import PropertyValidationError
from hsmusic.data.things import Album, ArtTag, Track


@pytest.fixture
def album_with_track(make_track):
    track = make_track("showtime")

    album = Album()
    album.color = '#123456'
    album.track_data = [track]
    album.track_sections = [{'tracks': ["track:showtime"]}]

    track.album_data = [album]
    return album, track


class TestAlbum:
    """Test finding a track's album."""

    def test_album(self, album_with_track):
        """A track belongs to the album listing it."""
        album, track = album_with_track
        assert track.album is album

    def test_no_album(self, make_track):
        """Tracks outside every album have none."""
        track = make_track("loose")
        assert track.album is None

        track.album_data = [Album()]
        assert track.album is None


class TestColor:
    """Test color inheritance."""

    def test_inherits_album_color(self, album_with_track):
        """Without its own color a track uses its album's."""
        album, track = album_with_track
        assert track.color == '#123456'

    def test_own_color_wins(self, album_with_track):
        """A track's own color takes precedence."""
        album, track = album_with_track
        track.color = '#abcdef'

        assert track.color == '#abcdef'

    def test_no_album_no_color(self, make_track):
        """Without an album or own color, there's no color."""
        assert make_track("loose").color is None

    def test_color_is_validated(self, make_track):
        """Colors are checked like any other property."""
        track = make_track("loose")
        with pytest.raises(PropertyValidationError, match="Malformed hex color"):
            track.color = 'red'


class TestTrackProperties:
    """Test the remaining track properties."""

    def test_duration(self):
        """Durations are non-negative numbers."""
        track = Track()
        track.duration = 93.5
        assert track.duration == 93.5

        with pytest.raises(PropertyValidationError):
            track.duration = -1

    def test_contributor_contribs(self, artist_and_contribs):
        """Every contribution list resolves against artist_data."""
        track = Track()
        track.artist_data = [artist_and_contribs.artist]
        track.contributor_contribs = [{'who': "Test Artist", 'what': "Viola"}]

        assert track.contributor_contribs == [{'who': artist_and_contribs.artist, 'what': "Viola"}]

    def test_art_tags(self):
        """Content warning references match tags by their plain name."""
        tag = ArtTag()
        tag.name = "Flashing Lights"
        tag.is_content_warning = True

        track = Track()
        track.art_tag_data = [tag]
        track.art_tags = ["cw: Flashing Lights"]

        assert track.art_tags == [tag]

    def test_referenced_tracks(self, make_track):
        """Referenced tracks resolve against track_data."""
        original = make_track("original")
        cover = make_track("cover")
        cover.track_data = [original, cover]
        cover.referenced_tracks = ["track:original", "Nonexistent"]

        assert cover.referenced_tracks == [original]

    def test_referenced_tracks_validated(self, make_track):
        """Only track references are accepted."""
        track = make_track("cover")
        with pytest.raises(PropertyValidationError, match="Expected reference of type 'track'"):
            track.referenced_tracks = ["album:original"]
