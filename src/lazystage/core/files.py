"""Plain and binary file responses, plus the shared 404/500 responses."""

import logging
from pathlib import Path

from aiohttp import web

from lazystage.core.listing import DirectoryLister
from lazystage.core.mime import text_content_type

logger = logging.getLogger(__name__)

TEXT_CACHE_CONTROL = "public, max-age=0"
BINARY_CACHE_CONTROL = "public, max-age=3600"

NOT_FOUND_BODY = "404 Not Found."
INTERNAL_ERROR_BODY = "Internal server error."
NOT_FOUND_PAGE = "404.html"

# Errors meaning "nothing servable at this path" rather than an I/O failure
_MISSING_ERRORS = (FileNotFoundError, NotADirectoryError, IsADirectoryError)


class FileServer:
    """Builds responses for files under the content root.

    Text is served with a no-cache policy since it is edited often; binary
    content is assumed immutable once published and may be cached for an hour.
    Missing files produce the Not-Found response. Other ``OSError`` failures
    propagate to the caller, which turns them into an Internal Error.
    """

    def __init__(self, content_root: Path, lister: DirectoryLister) -> None:
        """Initialize file server.

        Args:
            content_root: Root directory (location of the optional 404.html)
            lister: Lister used for extensionless paths naming a directory
        """
        self._content_root = content_root
        self._lister = lister

    def serve_text(self, path: Path, *, content_type: str | None = None) -> web.Response:
        """Serve a file as text.

        Args:
            path: Absolute file path
            content_type: Explicit content type; derived from the extension if None

        Returns:
            200 response with the file bytes, or the Not-Found response
        """
        logger.debug(f"Reading text file {path}")
        try:
            body = path.read_bytes()
        except _MISSING_ERRORS:
            return self.not_found()

        if content_type is None:
            content_type = text_content_type(path.suffix.removeprefix("."))

        return web.Response(
            body=body,
            content_type=content_type,
            charset="utf-8",
            headers={"Cache-Control": TEXT_CACHE_CONTROL},
        )

    def serve_binary(self, path: Path) -> web.StreamResponse:
        """Stream a file as an opaque byte sequence.

        Args:
            path: Absolute file path

        Returns:
            Streaming file response, or the Not-Found response
        """
        if not path.is_file():
            return self.not_found()

        logger.debug(f"Streaming binary file {path}")
        return web.FileResponse(path, headers={"Cache-Control": BINARY_CACHE_CONTROL})

    def serve_extensionless(self, path: Path) -> web.Response:
        """Serve a directory listing or an extensionless file such as LICENSE."""
        if path.is_dir():
            return self.serve_listing(path)
        return self.serve_text(path)

    def serve_listing(self, path: Path) -> web.Response:
        """Serve the HTML index of a directory."""
        return web.Response(
            text=self._lister.render(path),
            content_type="text/html",
            headers={"Cache-Control": TEXT_CACHE_CONTROL},
        )

    def not_found(self) -> web.Response:
        """Return the 404 response, using the root's 404.html when present."""
        page = self._content_root / NOT_FOUND_PAGE
        try:
            body = page.read_bytes()
        except OSError:
            return web.Response(status=404, text=NOT_FOUND_BODY)

        return web.Response(
            status=404,
            body=body,
            content_type="text/html",
            charset="utf-8",
        )

    def internal_error(self, err: BaseException) -> web.Response:
        """Log the failure and return the fixed 500 response."""
        logger.error(f"Internal error: {err!r}", exc_info=err)
        return web.Response(status=500, text=INTERNAL_ERROR_BODY)
