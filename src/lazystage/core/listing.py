"""HTML directory index with inline thumbnail previews."""

import html
import os
from pathlib import Path
from urllib.parse import quote

from lazystage.core.paths import PathResolver
from lazystage.core.types import DerivationKind

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "ico"})

# href of the up-link when the parent is the content root (or there is none):
# the whole-tree listing marker
ROOT_LISTING_HREF = "/*"

_PAGE_HEAD = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Index: /{title}</title>
<style>
.thumbnail-container {{
    width: 200px;
    height: 200px;
    background-color: grey;
    display: flex;
    align-items: center;
    justify-content: center;
    overflow: hidden;
}}
.thumbnail-container img {{
    max-height: 100%;
    max-width: 100%;
}}
</style>
</head>
<body>
<h1>Index: /{title}</h1>
"""

_PAGE_FOOT = """<footer><p>Served by lazystage</p></footer>
</body>
</html>
"""


class DirectoryLister:
    """Renders directory listings for directories under the content root.

    Entries are sorted by name (ordinal, case-sensitive). Dotfiles are hidden,
    and the reserved cache area is never listed even if renamed to something
    without a leading dot.
    """

    def __init__(self, resolver: PathResolver) -> None:
        self._resolver = resolver

    def render(self, directory: Path) -> str:
        """Render the HTML index of a directory.

        Args:
            directory: Absolute directory path under the content root

        Returns:
            Complete HTML document

        Raises:
            OSError: If the directory cannot be read
        """
        entries = sorted(directory.iterdir(), key=lambda p: p.name)

        title = _display(self._resolver.relative(directory))
        parts = [_PAGE_HEAD.format(title=title)]
        parts.append(f'<a href="{self._parent_href(directory)}">..</a><br>\n')

        for entry in entries:
            if entry.name.startswith(".") or self._resolver.is_reserved(entry):
                continue
            parts.append(self._render_entry(entry))

        parts.append(_PAGE_FOOT)
        return "".join(parts)

    def _parent_href(self, directory: Path) -> str:
        """Compute the up-link target for a directory.

        Args:
            directory: Directory being listed

        Returns:
            "/<parent>" for nested directories, ROOT_LISTING_HREF when the
            parent is the content root or the directory is the root itself
        """
        if directory == self._resolver.content_root:
            return ROOT_LISTING_HREF
        parent = self._resolver.relative(directory.parent)
        if not parent:
            return ROOT_LISTING_HREF
        return _href(parent)

    def _render_entry(self, entry: Path) -> str:
        """Render one listing line for a directory entry."""
        href = _href(self._resolver.relative(entry))
        name = _display(entry.name)
        link = f'<a href="{href}">{name}</a><br>\n'

        extension = entry.suffix.removeprefix(".").lower()
        if extension in IMAGE_EXTENSIONS:
            thumbnail = href + DerivationKind.THUMBNAIL.marker
            return (
                '<div class="thumbnail-container">'
                f'<img src="{thumbnail}" alt="preview">'
                "</div>\n" + link
            )
        return link


def _href(relative: str) -> str:
    """Build an absolute URL path from a root-relative file path.

    Quoting works on the filesystem bytes, so names that are not valid
    UTF-8 still produce a link that maps back to the same file.
    """
    return "/" + quote(os.fsencode(relative))


def _display(text: str) -> str:
    """Escape a file name for HTML, replacing undecodable bytes."""
    readable = text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    return html.escape(readable)
