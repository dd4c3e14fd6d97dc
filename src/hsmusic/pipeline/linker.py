"""Linking wiki data collections onto the things that use them.

Things resolve references against sibling collections (``artist_data``,
``track_data``, ...) stored in their own update properties. Linking writes
each collection to every thing that declares a property of that name.
"""

import logging
from typing import Iterator, Mapping

from hsmusic.data.cacheable_object import CacheableObject
from hsmusic.util import find

__all__ = ['WikiDataBinding', 'link_and_bind_wiki_data']

logger = logging.getLogger(__name__)


class WikiDataBinding:
    """Wiki data collections linked onto their things.

    Every thing shares the same list objects, so finders cache their results
    once per collection rather than once per thing.

    Exposed values are cached per thing, and a thing can't tell when a
    *different* thing changes. After editing things that are already linked,
    call ``decache()``: it relinks fresh copies of every collection, which
    invalidates everything computed from them, and drops the finder results
    cached for the old lists.
    """

    def __init__(self, wiki_data: Mapping[str, list]):
        self.wiki_data = dict(wiki_data)

    def things(self) -> Iterator[CacheableObject]:
        """Every thing in every collection, once each."""
        seen = set()
        for collection in self.wiki_data.values():
            for thing in collection:
                if id(thing) in seen:
                    continue
                seen.add(id(thing))
                yield thing

    def link(self) -> None:
        linked = 0
        for thing in self.things():
            descriptors = type(thing).property_descriptors
            for key, collection in self.wiki_data.items():
                descriptor = descriptors.get(key)
                if descriptor is None or not descriptor.flags.update:
                    continue
                setattr(thing, key, collection)
                linked += 1

        logger.debug("Linked %d collections onto things", linked)

    def decache(self) -> None:
        find.clear_all_caches()
        self.wiki_data = {key: list(collection) for key, collection in self.wiki_data.items()}
        self.link()


def link_and_bind_wiki_data(wiki_data: Mapping[str, list]) -> WikiDataBinding:
    """Link every collection in ``wiki_data`` onto the things which use it.

    Parameters
    ----------
    wiki_data : mapping of str to list
        Collections by property name, e.g. ``{'album_data': [...],
        'artist_data': [...]}``.

    Returns
    -------
    WikiDataBinding
        The linked collections; call ``decache()`` after further edits.
    """
    binding = WikiDataBinding(wiki_data)
    binding.link()
    return binding
