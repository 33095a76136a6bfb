"""Derived-asset cache.

Thumbnails and rendered documents are generated on first request by an
external tool and kept under the reserved cache area of the content root:

    <content root>/
    └── .cache/
        ├── .gitignore
        ├── thumbnails/
        │   └── 3f1c0d9a7e2b4c55_photos_a.png
        └── renders/
            └── 9b2e4470c1d3a8f6_notes_todo.md.html

Entries are immutable once written. They are never invalidated when the
source changes and never evicted.
"""

import asyncio
import hashlib
import logging
import os
import uuid
from pathlib import Path, PurePosixPath

from aiohttp import web

from lazystage.core.files import FileServer
from lazystage.core.paths import PathResolver
from lazystage.core.tools import ToolError, ToolRunner, render_command, thumbnail_command
from lazystage.core.types import DerivationKind

logger = logging.getLogger(__name__)

# Keeps cache file names within common filesystem limits (255 bytes)
MAX_NAME_LENGTH = 200

# Hex digits of the path digest prefixed to each cache file name
DIGEST_LENGTH = 16

RENDER_SUFFIX = ".html"


def cache_file_name(relative: str, kind: DerivationKind) -> str:
    """Compute the cache file name for a source path.

    The root-relative path is flattened ("/" becomes "_") and prefixed with a
    digest of the unflattened path, so "a/b.png" and "a_b.png" never collide.
    The source extension is kept, which lets the resize tool pick the
    output format.

    Args:
        relative: Source path relative to the content root (e.g., "photos/a.png")
        kind: Derivation kind

    Returns:
        File name inside the kind's cache subdirectory
    """
    digest = hashlib.sha256(relative.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]
    suffix = RENDER_SUFFIX if kind is DerivationKind.RENDER else ""

    name = f"{digest}_{relative.replace('/', '_')}{suffix}"
    if len(name.encode("utf-8")) > MAX_NAME_LENGTH:
        full_digest = hashlib.sha256(relative.encode("utf-8")).hexdigest()
        name = f"{full_digest}{PurePosixPath(relative).suffix}{suffix}"
    return name


class DerivedAssetCache:
    """Generate-or-reuse cache for derived assets.

    At most one generation runs per cache entry at a time: concurrent requests
    for an entry that is being generated wait for that generation instead of
    invoking the tool again.
    """

    _GITIGNORE_CONTENT = "# Ignore everything in this directory\n*\n"

    def __init__(
        self,
        resolver: PathResolver,
        cache_root: Path,
        files: FileServer,
        runner: ToolRunner,
        *,
        convert: str = "convert",
        pandoc: str = "pandoc",
        stylesheet: str = "/style.css",
    ) -> None:
        """Initialize cache.

        Args:
            resolver: Resolver for the content root
            cache_root: Reserved cache area (e.g., <content root>/.cache)
            files: File server used to send cached entries
            runner: Runner for the external tools
            convert: ImageMagick executable for thumbnails
            pandoc: Pandoc executable for rendered documents
            stylesheet: Stylesheet URL linked from rendered documents
        """
        self._resolver = resolver
        self._cache_root = cache_root
        self._files = files
        self._runner = runner
        self._convert = convert
        self._pandoc = pandoc
        self._stylesheet = stylesheet
        self._pending: dict[Path, asyncio.Task[None]] = {}

    @property
    def cache_root(self) -> Path:
        """Reserved cache area."""
        return self._cache_root

    def cache_dir(self, kind: DerivationKind) -> Path:
        """Cache subdirectory for a derivation kind."""
        return self._cache_root / kind.cache_subdir

    def cache_path(self, source: Path, kind: DerivationKind) -> Path:
        """Deterministic cache location of a source's derived asset."""
        relative = self._resolver.relative(source)
        return self.cache_dir(kind) / cache_file_name(relative, kind)

    async def serve(self, requested: Path, kind: DerivationKind) -> web.StreamResponse:
        """Serve the derived asset for a requested path.

        Args:
            requested: Resolved request path including the kind's marker
                suffix (e.g., /srv/photos/a.png.thumbnail)
            kind: Derivation kind

        Returns:
            Cached asset response, or Not-Found if the source is missing

        Raises:
            ToolError: If generation fails
            OSError: If the cache area cannot be written
        """
        name = requested.name
        if name.lower().endswith(kind.marker):
            name = name[: -len(kind.marker)]
        source = requested.with_name(name)
        if not source.is_file():
            return self._files.not_found()

        target = await self.ensure(source, kind)
        if kind is DerivationKind.THUMBNAIL:
            return self._files.serve_binary(target)
        return self._files.serve_text(target)

    async def ensure(self, source: Path, kind: DerivationKind) -> Path:
        """Return the cache path of a derived asset, generating it if absent.

        Args:
            source: Existing source file under the content root
            kind: Derivation kind

        Returns:
            Path of the cached asset

        Raises:
            ToolError: If generation fails
            OSError: If the cache area cannot be written
        """
        target = self.cache_path(source, kind)
        if target.exists():
            logger.debug(f"Cache hit: {target}")
            return target

        pending = self._pending.get(target)
        if pending is None:
            logger.debug(f"Cache miss: {target}")
            pending = asyncio.create_task(self._generate(source, kind, target))
            self._pending[target] = pending
            pending.add_done_callback(lambda task: self._forget(target, task))
        else:
            logger.debug(f"Waiting for in-flight generation of {target}")

        # Cancelling one waiter must not cancel the shared generation
        await asyncio.shield(pending)
        return target

    def _forget(self, target: Path, task: "asyncio.Task[None]") -> None:
        """Drop a finished generation from the in-flight map."""
        self._pending.pop(target, None)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Generation of {target} failed: {task.exception()!r}")

    async def _generate(self, source: Path, kind: DerivationKind, target: Path) -> None:
        """Run the external tool and move its output into place atomically.

        The tool writes to a hidden temporary sibling of the target; only a
        successful run is renamed to the final name, so a failed or
        interrupted run never leaves a file that looks like a valid entry.
        """
        self._ensure_cache_dir(kind)

        temp = target.with_name(f".{uuid.uuid4().hex}.{target.name}")
        if kind is DerivationKind.THUMBNAIL:
            argv = thumbnail_command(self._convert, source, temp)
        else:
            argv = render_command(self._pandoc, source, temp, self._stylesheet)

        logger.info(f"Generating {kind.value} for {source}")
        try:
            await self._runner.run(argv)
            if not temp.is_file():
                raise ToolError(f"{argv[0]} exited successfully but wrote no output")
            os.replace(temp, target)
        except BaseException:
            temp.unlink(missing_ok=True)
            raise

    def _ensure_cache_dir(self, kind: DerivationKind) -> None:
        """Create the cache area and the kind's subdirectory if missing.

        Safe to call from concurrent requests: creation tolerates directories
        that already exist.
        """
        if not self._cache_root.exists():
            self._cache_root.mkdir(parents=True, exist_ok=True)
            gitignore_path = self._cache_root / ".gitignore"
            gitignore_path.write_text(self._GITIGNORE_CONTENT, encoding="utf-8")
        self.cache_dir(kind).mkdir(parents=True, exist_ok=True)
