"""View cache — identity to compiled view factory.

Lookups are lock-free reads of a plain dict. The cache lock only guards
mutation, and compiles run outside it, so two threads that miss on the same
identity may both compile. The first stored result wins and every racer
gets that result back; the loser's module is simply dropped.

With ``ViewConfig.runtime_view_updates`` enabled, a lookup first compares
the template's current modification time against the time captured just
before its entry was compiled and evicts stale entries.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from trill.config import ViewConfig
from trill.identity import ViewIdentity, is_stale

if TYPE_CHECKING:
    from trill.compiler import CompilationResult, ViewFactory
    from trill.locator import ViewLocator

logger = logging.getLogger("trill.cache")


class BulkCompiler(Protocol):
    """What ``compile_all`` needs from an engine."""

    @property
    def extensions(self) -> Sequence[str]: ...

    def compile_views(self, identities: Iterable[ViewIdentity]) -> Iterator[CompilationResult]: ...


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A stored compile result and the template mtime it was compiled from."""

    result: CompilationResult
    compiled_at: float

    @property
    def factory(self) -> ViewFactory:
        return self.result.factory


class ViewCache:
    """Thread-safe map from ``ViewIdentity`` to compiled view factory.

    Args:
        config: Controls staleness checks and whether failed compiles are
            kept.
    """

    __slots__ = ("_config", "_entries", "_lock")

    def __init__(self, config: ViewConfig | None = None) -> None:
        self._config = config or ViewConfig()
        self._entries: dict[ViewIdentity, CacheEntry] = {}
        self._lock = threading.Lock()

    def get_or_add(
        self,
        identity: ViewIdentity,
        compile_fn: Callable[[ViewIdentity], CompilationResult],
    ) -> ViewFactory:
        """Return the cached factory for ``identity``, compiling on a miss.

        Exceptions raised by ``compile_fn`` propagate and leave the cache
        untouched.
        """
        entry = self._entries.get(identity)
        if entry is not None and self._config.runtime_view_updates and is_stale(
            identity, entry.compiled_at
        ):
            logger.debug("Template %s changed on disk, recompiling", identity.full_name)
            self._discard(identity, entry)
            entry = None
        if entry is not None:
            return entry.factory

        compiled_at = identity.last_modified
        result = compile_fn(identity)
        if not result.succeeded and not self._config.cache_failed_compiles:
            return result.factory

        return self._store(identity, CacheEntry(result, compiled_at)).factory

    def compile_all(
        self,
        locator: ViewLocator,
        engines: Iterable[BulkCompiler],
    ) -> Iterator[CompilationResult]:
        """Clear the cache and compile every discovered template.

        Each engine compiles the templates whose extension it supports.
        Every result is stored, failures included, and yielded as it
        arrives.
        """
        self.clear()
        identities = list(locator.list_all_discovered())
        logger.info("Compiling %d discovered template(s)", len(identities))
        for engine in engines:
            supported = {ext.lower() for ext in engine.extensions}
            selected = [i for i in identities if i.extension.lower() in supported]
            if not selected:
                continue
            stamps = {identity: identity.last_modified for identity in selected}
            for result in engine.compile_views(selected):
                compiled_at = stamps.get(result.identity, result.identity.last_modified)
                self._store(result.identity, CacheEntry(result, compiled_at))
                yield result

    def evict(self, identity: ViewIdentity) -> bool:
        """Drop the entry for ``identity``. Returns whether one existed."""
        with self._lock:
            return self._entries.pop(identity, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def entry(self, identity: ViewIdentity) -> CacheEntry | None:
        return self._entries.get(identity)

    def _store(self, identity: ViewIdentity, entry: CacheEntry) -> CacheEntry:
        with self._lock:
            stored = self._entries.setdefault(identity, entry)
        if stored is entry:
            logger.debug("Cached %s", identity.full_name)
        return stored

    def _discard(self, identity: ViewIdentity, entry: CacheEntry) -> None:
        # Another thread may already have replaced the stale entry.
        with self._lock:
            if self._entries.get(identity) is entry:
                del self._entries[identity]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __iter__(self) -> Iterator[tuple[ViewIdentity, ViewFactory]]:
        with self._lock:
            items = list(self._entries.items())
        return iter([(identity, entry.factory) for identity, entry in items])
