"""Root-level pytest fixtures for the hsmusic test suite.

Provides shared configuration fixtures and small stub things. Tests build
configs through these fixtures rather than raw dicts.
"""

from collections import namedtuple

import pytest

from hsmusic.data.things import Artist, Track
from hsmusic.schemas import ParamConfig, UserConfig, resolve_config


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Examples
    --------
    >>> def test_precache(make_config):
    ...     config = make_config(PRECACHE=True)
    ...     assert config.cache.precache is True
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            return resolve_config(param_config, UserConfig(**user_overrides))
        return resolve_config(param_config, None)

    return _make


# =============================================================================
# Stub Things
# =============================================================================

ArtistAndContribs = namedtuple("ArtistAndContribs", ["artist", "contribs", "bad_contribs"])


@pytest.fixture
def artist_and_contribs():
    """One artist, contributions crediting them, and contributions crediting nobody."""
    artist = Artist()
    artist.name = "Test Artist"

    return ArtistAndContribs(
        artist=artist,
        contribs=[{"who": "Test Artist", "what": None}],
        bad_contribs=[{"who": "Figment of Your Imagination", "what": None}],
    )


@pytest.fixture
def make_track():
    """Factory for tracks with only a directory set."""
    def _make(directory="foo"):
        track = Track()
        track.directory = directory
        return track

    return _make
