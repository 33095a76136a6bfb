"""Mapping of URL paths onto the content root."""

import os
from pathlib import Path

from lazystage.core.types import URLPath


class PathResolver:
    """Resolves request paths to files beneath a fixed content root.

    Resolution is lexical: ``.`` and ``..`` segments are collapsed before the
    result is checked against the root, so a request can never address a file
    outside it. Paths inside the reserved cache area are refused as well.
    """

    def __init__(self, content_root: Path, cache_root: Path) -> None:
        """Initialize resolver.

        Args:
            content_root: Absolute directory all served paths live under
            cache_root: Absolute reserved cache area under content_root
        """
        self._content_root = content_root
        self._cache_root = cache_root

    @property
    def content_root(self) -> Path:
        """Root directory of served content."""
        return self._content_root

    def resolve(self, url_path: URLPath | str) -> Path | None:
        """Resolve a request path to an absolute on-disk path.

        Args:
            url_path: Decoded request path (e.g., "/docs/guide.md")

        Returns:
            Absolute path under the content root, or None when the path
            escapes the root, targets the cache area, or is malformed
        """
        if "\0" in url_path:
            return None

        relative = url_path.lstrip("/")
        candidate = Path(os.path.normpath(self._content_root / relative))

        if not candidate.is_relative_to(self._content_root):
            return None
        if self.is_reserved(candidate):
            return None
        return candidate

    def is_reserved(self, path: Path) -> bool:
        """Check whether a path lies in the reserved cache area."""
        return path == self._cache_root or path.is_relative_to(self._cache_root)

    def relative(self, path: Path) -> str:
        """Return a path relative to the content root using "/" separators.

        The root itself maps to an empty string.
        """
        relative = path.relative_to(self._content_root).as_posix()
        return "" if relative == "." else relative
