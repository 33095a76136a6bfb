"""Request routing.

Each request path is classified into exactly one RouteKind, first match wins:

1. "/"                     -> the extensionless "index" resource
2. "/*"                    -> listing of the whole content root
3. the cache area, or below -> Not Found
4. by extension of the resolved path:
   none                    -> directory listing or extensionless text file
   known text extension    -> text
   ".thumbnail"            -> derived thumbnail
   ".render"               -> derived HTML rendering
   ".source"               -> underlying file forced to text/plain
   anything else           -> binary
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from aiohttp import web

from lazystage.core.cache import DerivedAssetCache
from lazystage.core.files import FileServer
from lazystage.core.paths import PathResolver
from lazystage.core.types import DerivationKind, URLPath

logger = logging.getLogger(__name__)

ROOT_PATH = "/"
LIST_TREE_PATH = "/*"
INDEX_NAME = "index"
SOURCE_MARKER = ".source"

TEXT_EXTENSIONS = frozenset(
    {"html", "htm", "css", "js", "txt", "md", "csv", "ics", "xml", "rss"},
)


class RouteKind(Enum):
    """How a request is handled. The value is the tag used in access logs."""

    EXTENSIONLESS = "---"
    TREE = "dir"
    RESERVED = "rsv"
    MISSING = "404"
    TEXT = "txt"
    THUMBNAIL = "tmb"
    RENDER = "rnd"
    SOURCE = "src"
    BINARY = "bin"


@dataclass(frozen=True)
class Route:
    """Classification result: what to do and which file it applies to."""

    kind: RouteKind
    path: Path | None = None


class Router:
    """Classifies request paths and dispatches them to the handling component.

    No exception escapes dispatch: missing files become the Not-Found
    response and every other failure becomes the Internal Error response.
    """

    def __init__(
        self,
        resolver: PathResolver,
        files: FileServer,
        derived: DerivedAssetCache,
        *,
        cache_url_prefix: str = "/.cache",
    ) -> None:
        """Initialize router.

        Args:
            resolver: Maps request paths onto the content root
            files: Serves text, binary and listing responses
            derived: Serves thumbnails and rendered documents
            cache_url_prefix: URL path of the reserved cache area
        """
        self._resolver = resolver
        self._files = files
        self._derived = derived
        self._cache_url_prefix = cache_url_prefix

    def classify(self, url_path: URLPath | str) -> Route:
        """Classify a decoded request path.

        Args:
            url_path: Request path (e.g., "/photos/a.png.thumbnail")

        Returns:
            Route naming the handling strategy and the resolved file
        """
        if url_path == ROOT_PATH:
            return Route(RouteKind.EXTENSIONLESS, self._resolver.content_root / INDEX_NAME)
        if url_path == LIST_TREE_PATH:
            return Route(RouteKind.TREE, self._resolver.content_root)
        if self._is_cache_url(url_path):
            return Route(RouteKind.RESERVED)

        path = self._resolver.resolve(url_path)
        if path is None:
            return Route(RouteKind.MISSING)

        extension = path.suffix.removeprefix(".").lower()
        if not extension:
            return Route(RouteKind.EXTENSIONLESS, path)
        if extension in TEXT_EXTENSIONS:
            return Route(RouteKind.TEXT, path)
        if f".{extension}" == DerivationKind.THUMBNAIL.marker:
            return Route(RouteKind.THUMBNAIL, path)
        if f".{extension}" == DerivationKind.RENDER.marker:
            return Route(RouteKind.RENDER, path)
        if f".{extension}" == SOURCE_MARKER:
            return Route(RouteKind.SOURCE, path.with_name(path.name[: -len(SOURCE_MARKER)]))
        return Route(RouteKind.BINARY, path)

    async def dispatch(self, url_path: URLPath | str) -> web.StreamResponse:
        """Produce the response for a request path.

        Args:
            url_path: Decoded request path

        Returns:
            200, 404 or 500 response
        """
        try:
            route = self.classify(url_path)
            logger.info(f"GET: [{route.kind.value}] {route.path or url_path}")
            return await self._handle(route)
        except FileNotFoundError as e:
            logger.debug(f"Not found while serving {url_path}: {e}")
            return self._files.not_found()
        except Exception as e:
            return self._files.internal_error(e)

    async def _handle(self, route: Route) -> web.StreamResponse:
        """Run the handler for a classified route."""
        match route:
            case Route(kind=RouteKind.RESERVED | RouteKind.MISSING) | Route(path=None):
                return self._files.not_found()
            case Route(kind=RouteKind.TREE, path=path):
                return self._files.serve_listing(path)
            case Route(kind=RouteKind.EXTENSIONLESS, path=path):
                return self._files.serve_extensionless(path)
            case Route(kind=RouteKind.TEXT, path=path):
                return self._files.serve_text(path)
            case Route(kind=RouteKind.SOURCE, path=path):
                return self._files.serve_text(path, content_type="text/plain")
            case Route(kind=RouteKind.THUMBNAIL, path=path):
                return await self._derived.serve(path, DerivationKind.THUMBNAIL)
            case Route(kind=RouteKind.RENDER, path=path):
                return await self._derived.serve(path, DerivationKind.RENDER)
            case Route(kind=RouteKind.BINARY, path=path):
                return self._files.serve_binary(path)
        raise AssertionError(f"Unhandled route: {route}")

    def _is_cache_url(self, url_path: str) -> bool:
        """Check whether a request path addresses the reserved cache area."""
        prefix = self._cache_url_prefix
        return url_path == prefix or url_path.startswith(prefix + "/")
