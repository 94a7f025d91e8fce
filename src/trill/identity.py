"""View identity — where a template lives and how to read it.

A ViewIdentity is the cache key for compiled views. Equality and hashing
use only ``location``, ``name`` and ``extension``: the content accessor and
the modification clock may change underneath a live identity, and staleness
is checked against the cache entry rather than folded into the key.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO


@dataclass(frozen=True, slots=True)
class ViewIdentity:
    """Immutable descriptor of one template.

    Attributes:
        location: Directory of the template relative to its root,
            ``/``-separated. Empty for templates at the root.
        name: Base name without extension.
        extension: Extension without the leading dot.
        contents: Returns a fresh readable text stream on every call.
        modified: Returns the current last-modified timestamp, or ``None``
            for sources that never change.
    """

    location: str
    name: str
    extension: str
    contents: Callable[[], TextIO] = field(compare=False, repr=False)
    modified: Callable[[], float] | None = field(default=None, compare=False, repr=False)

    @property
    def full_name(self) -> str:
        """``location/name.extension`` (no leading slash for root templates)."""
        file_name = f"{self.name}.{self.extension}"
        return f"{self.location}/{file_name}" if self.location else file_name

    @property
    def last_modified(self) -> float:
        if self.modified is None:
            return 0.0
        return self.modified()

    def read_text(self) -> str:
        with self.contents() as reader:
            return reader.read()

    @classmethod
    def from_path(cls, path: str | Path, root: str | Path) -> ViewIdentity:
        """Build an identity for a template file below ``root``."""
        file_path = Path(path)
        relative = file_path.relative_to(root)
        location = relative.parent.as_posix()
        if location == ".":
            location = ""

        def _open() -> TextIO:
            return file_path.open(encoding="utf-8")

        def _modified() -> float:
            return os.stat(file_path).st_mtime

        return cls(
            location=location,
            name=file_path.stem,
            extension=file_path.suffix.lstrip("."),
            contents=_open,
            modified=_modified,
        )


def is_stale(identity: ViewIdentity, compiled_at: float) -> bool:
    """True if the template changed after the compile that produced ``compiled_at``."""
    return identity.last_modified > compiled_at
