"""Load-run orchestration.

Creates things with a shared diagnostics context, links wiki data, warms
caches, and reports on what was loaded.
"""

import logging
from typing import Iterator, Mapping, Optional

import pandas as pd

from hsmusic.data.cacheable_object import CacheableObject, PropertyAccessDiagnostics
from hsmusic.pipeline.linker import WikiDataBinding, link_and_bind_wiki_data
from hsmusic.schemas import InternalConfig, resolve_config
from hsmusic.util import find
from hsmusic.util.find import Finder

__all__ = ['WikiDataOrchestrator']

logger = logging.getLogger(__name__)


class WikiDataOrchestrator:
    """Manages one load run of wiki data.

    **Lifecycle:**

    1. ``create()`` each thing and write its update properties.
    2. ``link()`` the collections, which binds ``artist_data`` and friends
       onto every thing and optionally precaches.
    3. Read exposed properties, ``find()`` things by reference.
    4. ``report()`` any undeclared-property accesses seen along the way.

    Example usage::

        orch = WikiDataOrchestrator(resolve_config(user_cfg={"PRECACHE": True}))
        orch.setup_logging()

        artist = orch.create(Artist, name="Toby Fox")
        album = orch.create(Album, name="Homestuck Vol. 5",
                            artist_contribs=[{"who": "Toby Fox", "what": None}])

        orch.link({"album_data": [album], "artist_data": [artist]})
        orch.find("album", "album:homestuck-vol-5")
    """

    def __init__(self, config: Optional[InternalConfig] = None):
        """Initialize orchestrator with a resolved configuration.

        Parameters
        ----------
        config : InternalConfig, optional
            Output of resolve_config(). Defaults to the expert defaults.
        """
        self.config = config if config is not None else resolve_config()

        if self.config.debug.track_invalid_properties:
            self.diagnostics = PropertyAccessDiagnostics()
        else:
            self.diagnostics = None

        self.binding: Optional[WikiDataBinding] = None

    def setup_logging(self):
        """Configure the root logger from config.

        Always logs to the console; also to ``logging.file`` when set.
        """
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        if self.config.logging.file:
            fh = logging.FileHandler(self.config.logging.file)
            fh.setLevel(log_level)
            fh.setFormatter(formatter)
            root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s",
                    self.config.logging.level, self.config.logging.file)

    def create(self, thing_class, **fields):
        """Construct ``thing_class`` in this run and write ``fields`` to it."""
        thing = thing_class(diagnostics=self.diagnostics)
        for key, value in fields.items():
            setattr(thing, key, value)
        return thing

    def link(self, wiki_data: Mapping[str, list]) -> WikiDataBinding:
        """Link collections onto their things, then precache as configured."""
        self.binding = link_and_bind_wiki_data(wiki_data)

        logger.info("Linked %d things across %d collections",
                    sum(1 for _ in self.binding.things()), len(self.binding.wiki_data))

        if self.config.cache.precache:
            self.precache()

        if self.config.cache.show_readiness:
            self._log_readiness()

        return self.binding

    def things(self) -> Iterator[CacheableObject]:
        if self.binding is None:
            return iter(())
        return self.binding.things()

    def decache(self) -> None:
        """Drop values cached from the linked collections; see WikiDataBinding."""
        if self.binding is None:
            raise RuntimeError("Wiki data isn't linked yet")
        self.binding.decache()

    def precache(self) -> None:
        """Compute (and so cache) every exposed property of every linked thing."""
        count = 0
        for thing in self.things():
            CacheableObject.cache_all_exposed_properties(thing)
            count += 1
        logger.info("Precached %d things", count)

    def readiness_table(self) -> pd.DataFrame:
        """One row per linked thing and exposed property.

        Columns are ``thing`` (its repr), ``property`` and ``ready``, which is
        True when every update property it depends on is set.
        """
        rows = [
            {'thing': repr(thing), 'property': name, 'ready': ready}
            for thing in self.things()
            for name, ready in CacheableObject.list_accessible_properties(thing).items()
        ]
        return pd.DataFrame(rows, columns=['thing', 'property', 'ready'])

    def _log_readiness(self) -> None:
        table = self.readiness_table()
        if table.empty:
            logger.info("Readiness: nothing linked")
            return

        logger.info("Readiness: %d/%d properties ready",
                    int(table['ready'].sum()), len(table))

        not_ready = table.loc[~table['ready'].astype(bool)]
        for name, count in not_ready.groupby('property').size().items():
            logger.debug("  %s: %d things not ready", name, count)

    def find(self, kind: str, ref: str, mode: Optional[str] = None):
        """Resolve ``ref`` against the linked ``{kind}_data`` collection.

        ``kind`` names a finder in hsmusic.util.find (``album``,
        ``art_tag``, ...). ``mode`` defaults to ``find.mode`` from config.
        """
        finder = getattr(find, kind, None)
        if not isinstance(finder, Finder):
            raise ValueError(f"No finder for {kind!r}")

        if self.binding is None:
            raise RuntimeError("Wiki data isn't linked yet")

        data = self.binding.wiki_data.get(f"{kind}_data")
        return finder(ref, data, mode=mode or self.config.find.mode)

    def report(self) -> int:
        """Log recorded undeclared-property accesses; return how many there were."""
        if self.diagnostics is None:
            return 0
        return self.diagnostics.report()
