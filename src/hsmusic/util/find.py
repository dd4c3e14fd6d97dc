"""Reference resolution against wiki data collections.

A reference is either keyed (``"track:showtime"``), matched against each
thing's ``directory``, or bare (``"Showtime"``), matched case-insensitively
against each thing's ``name``. Each kind of thing gets its own Finder,
exposed at module level::

    from hsmusic.util import find

    find.track('track:showtime', track_data)            # Track or None
    find.artist('Toby Fox', artist_data, mode='quiet')  # no logging

Finders cache their outcomes per collection *identity*. Mutating a linked
collection in place is not supported; build a new list instead.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

__all__ = [
    'AmbiguousMatch',
    'FIND_MODES',
    'Finder',
    'Match',
    'NoMatch',
    'album',
    'art_tag',
    'artist',
    'clear_all_caches',
    'find_helper',
    'flash',
    'group',
    'listing',
    'news_entry',
    'static_page',
    'track',
]

logger = logging.getLogger(__name__)

FIND_MODES = ('error', 'warn', 'quiet')


@dataclass(frozen=True)
class Match:
    """Exactly one thing matched. ``exact`` is False for a case-insensitive name hit."""
    thing: Any
    exact: bool = True


@dataclass(frozen=True)
class NoMatch:
    """Nothing matched the reference."""


@dataclass(frozen=True)
class AmbiguousMatch:
    """More than one thing matched a bare name; none is chosen."""
    candidates: tuple


MatchOutcome = Union[Match, NoMatch, AmbiguousMatch]


def match_directory(ref: str, data: Sequence) -> MatchOutcome:
    for thing in data:
        if thing.directory == ref:
            return Match(thing)
    return NoMatch()


def match_name(ref: str, data: Sequence) -> MatchOutcome:
    folded = ref.lower()
    matches = [thing for thing in data if thing.name is not None and thing.name.lower() == folded]

    if len(matches) > 1:
        return AmbiguousMatch(tuple(matches))

    if not matches:
        return NoMatch()

    thing = matches[0]
    return Match(thing, exact=(thing.name == ref))


def match_tag_name(ref: str, data: Sequence) -> MatchOutcome:
    return match_name(ref[4:] if ref.startswith('cw: ') else ref, data)


class Finder:
    """Resolves references for one kind of thing.

    Parameters
    ----------
    keys : sequence of str
        Reference keys accepted for directory matches (e.g. ``album``,
        ``album-commentary``).
    by_directory, by_name : callable, optional
        ``(ref, data) -> MatchOutcome`` overrides for the two match styles.
    """

    def __init__(self, keys: Sequence[str],
                 by_directory: Optional[Callable[[str, Sequence], MatchOutcome]] = None,
                 by_name: Optional[Callable[[str, Sequence], MatchOutcome]] = None):
        self.keys = tuple(keys)
        self._by_directory = by_directory or match_directory
        self._by_name = by_name or match_name
        self._pattern = re.compile(
            r'^(?:(' + '|'.join(re.escape(key) for key in self.keys) + r'):(?=\S))?(.*)$'
        )
        # id(data) -> (data, {ref: outcome}); holding ``data`` keeps its id from being reused
        self._cache: dict[int, tuple[Sequence, dict[str, MatchOutcome]]] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def resolve(self, ref: str, data: Sequence) -> MatchOutcome:
        """Match ``ref`` against ``data`` and return the tagged outcome."""
        if not isinstance(ref, str):
            raise TypeError(f"Got a reference that is {type(ref).__name__}, not string: {ref!r}")

        if data is None:
            raise ValueError("Expected data to be present")

        entry = self._cache.get(id(data))
        if entry is None or entry[0] is not data:
            entry = (data, {})
            self._cache[id(data)] = entry

        outcomes = entry[1]
        if ref in outcomes:
            return outcomes[ref]

        key, name = self._pattern.match(ref).groups()
        outcome = self._by_directory(name, data) if key else self._by_name(name, data)

        outcomes[ref] = outcome
        return outcome

    def __call__(self, ref: Optional[str], data: Sequence, mode: str = 'warn'):
        """Return the matching thing, or None.

        ``mode`` is ``'quiet'`` (no logging), ``'warn'`` (log misses,
        ambiguity and bad capitalization) or ``'error'`` (raise LookupError
        on a miss or ambiguity).
        """
        if mode not in FIND_MODES:
            raise ValueError(f"Expected mode to be one of {', '.join(FIND_MODES)}, got {mode!r}")

        if not ref:
            return None

        outcome = self.resolve(ref, data)

        if isinstance(outcome, Match):
            if not outcome.exact and mode == 'warn':
                logger.warning("Bad capitalization: %s -> %s", ref, outcome.thing.name)
            return outcome.thing

        if isinstance(outcome, AmbiguousMatch):
            # TODO: Make ambiguity a hard error once existing data has no duplicate names.
            if mode == 'error':
                raise LookupError(f"Multiple matches for reference {ref!r}")
            if mode == 'warn':
                logger.error("Multiple matches for reference %r. Please resolve:", ref)
                for candidate in outcome.candidates:
                    logger.error("- %s (%s)", candidate.name, candidate.directory)
                logger.error("Returning None for this reference.")
            return None

        if mode == 'error':
            raise LookupError(f"Didn't match anything for {ref!r}")
        if mode == 'warn':
            logger.warning("Didn't match anything for %s!", ref)
        return None


def find_helper(keys: Sequence[str], **match_fns) -> Finder:
    return Finder(keys, **match_fns)


album = find_helper(['album', 'album-commentary'])
artist = find_helper(['artist', 'artist-gallery'])
art_tag = find_helper(['tag'], by_name=match_tag_name)
flash = find_helper(['flash'])
group = find_helper(['group', 'group-gallery'])
listing = find_helper(['listing'])
news_entry = find_helper(['news-entry'])
static_page = find_helper(['static'])
track = find_helper(['track'])


def clear_all_caches() -> None:
    """Forget every cached result of the finders above.

    Cached results hold on to the collection they came from, so call this
    whenever collections are swapped out for new lists.
    """
    for finder in (album, artist, art_tag, flash, group, listing, news_entry, static_page, track):
        finder.clear_cache()
