"""View locators — find templates by name and enumerate them for warm-up.

Two implementations ship:

- ``FileSystemViewLocator``: templates under a directory tree.
- ``MemoryViewLocator``: templates held in memory, with a settable
  modification time. Handy for embedding and tests.

Names are ``/``-separated paths without the extension (``"shared/layout"``);
the locator tries each supported extension in order.
"""

from __future__ import annotations

import io
import logging
import time
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Protocol, TextIO

from trill.identity import ViewIdentity
from trill.syntax import LANGUAGES

logger = logging.getLogger("trill.locator")

DEFAULT_EXTENSIONS: tuple[str, ...] = tuple(
    ext for language in LANGUAGES for ext in language.extensions
)


class ViewLocator(Protocol):
    """Resolve template names to identities."""

    def locate(self, name: str, model: Any = None) -> ViewIdentity | None: ...

    def list_all_discovered(self) -> Iterable[ViewIdentity]: ...


def _split_name(name: str) -> tuple[str, str]:
    """``"a/b/c"`` → ``("a/b", "c")``."""
    location, _, base = name.strip("/").rpartition("/")
    return location, base


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------


class FileSystemViewLocator:
    """Templates stored as files under ``root``.

    Args:
        root: Template directory.
        extensions: Extensions to consider, in lookup priority order.
        encoding: Encoding used to read template files.
    """

    def __init__(
        self,
        root: str | Path,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        *,
        encoding: str = "utf-8",
    ) -> None:
        self.root = Path(root)
        self.extensions = tuple(ext.lstrip(".") for ext in extensions)
        self.encoding = encoding

    def locate(self, name: str, model: Any = None) -> ViewIdentity | None:
        relative = name.strip("/")
        if not relative:
            return None
        for ext in self.extensions:
            path = self.root / f"{relative}.{ext}"
            if path.is_file():
                return self._identity(path)
        return None

    def list_all_discovered(self) -> list[ViewIdentity]:
        if not self.root.is_dir():
            logger.debug("Template root %s does not exist", self.root)
            return []
        found: list[ViewIdentity] = []
        for path in sorted(self.root.rglob("*")):
            relative = path.relative_to(self.root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.is_file() and path.suffix.lstrip(".") in self.extensions:
                found.append(self._identity(path))
        return found

    def _identity(self, path: Path) -> ViewIdentity:
        identity = ViewIdentity.from_path(path, self.root)
        if self.encoding == "utf-8":
            return identity

        def _open() -> TextIO:
            return path.open(encoding=self.encoding)

        return ViewIdentity(
            location=identity.location,
            name=identity.name,
            extension=identity.extension,
            contents=_open,
            modified=identity.modified,
        )


# ---------------------------------------------------------------------------
# In memory
# ---------------------------------------------------------------------------


class MemorySource:
    """A mutable in-memory template.

    Updating ``text`` through ``update()`` bumps ``mtime`` so staleness
    checks notice the change; ``mtime`` can also be set directly.
    """

    __slots__ = ("mtime", "text")

    def __init__(self, text: str, mtime: float | None = None) -> None:
        self.text = text
        self.mtime = time.time() if mtime is None else mtime

    def update(self, text: str, mtime: float | None = None) -> None:
        self.text = text
        self.mtime = max(time.time(), self.mtime + 1) if mtime is None else mtime

    def open(self) -> TextIO:
        return io.StringIO(self.text)


class MemoryViewLocator:
    """Templates held in a dict of full name → source.

    Example::

        locator = MemoryViewLocator({
            "index.html": "{% layout 'shared/layout' %}<p>{{ model.title }}</p>",
            "shared/layout.html": "<main>{% body %}</main>",
        })
    """

    def __init__(
        self,
        templates: dict[str, str] | None = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.extensions = tuple(ext.lstrip(".") for ext in extensions)
        self.sources: dict[str, MemorySource] = {}
        for full_name, text in (templates or {}).items():
            self.add(full_name, text)

    def add(self, full_name: str, text: str, mtime: float | None = None) -> ViewIdentity:
        """Add or replace a template, e.g. ``add("shared/layout.html", "...")``.

        Replacing an existing template moves its modification time forward.
        """
        key = full_name.strip("/")
        existing = self.sources.get(key)
        if existing is None:
            self.sources[key] = MemorySource(text, mtime)
        else:
            existing.update(text, mtime)
        return self.identity(full_name)

    def identity(self, full_name: str) -> ViewIdentity:
        key = full_name.strip("/")
        stem, dot, extension = key.rpartition(".")
        if not dot:
            msg = f"Template name {full_name!r} has no extension"
            raise ValueError(msg)
        if key not in self.sources:
            raise KeyError(full_name)
        location, name = _split_name(stem)
        # Looked up on every call so ``add()`` replacements are seen.
        return ViewIdentity(
            location=location,
            name=name,
            extension=extension,
            contents=lambda: self.sources[key].open(),
            modified=lambda: self.sources[key].mtime,
        )

    def locate(self, name: str, model: Any = None) -> ViewIdentity | None:
        stem = name.strip("/")
        for ext in self.extensions:
            key = f"{stem}.{ext}"
            if key in self.sources:
                return self.identity(key)
        return None

    def list_all_discovered(self) -> list[ViewIdentity]:
        return [
            self.identity(key)
            for key in sorted(self.sources)
            if key.rpartition(".")[2] in self.extensions
        ]
