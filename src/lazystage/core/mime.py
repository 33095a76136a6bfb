"""Content-type resolution for text responses.

Maps a file extension to the subtype used in ``text/<subtype>``. Extensions
without an override are used literally, so ``.css`` becomes ``text/css``.
"""

MIME_OVERRIDES: dict[str, str] = {
    "": "plain",
    "js": "javascript",
    "htm": "html",
    "txt": "plain",
    "md": "markdown",
    "ics": "calendar",
    "rss": "xml",
}


def text_subtype(extension: str) -> str:
    """Return the text subtype for a file extension.

    Args:
        extension: Extension without the leading dot (e.g., "js"), may be empty

    Returns:
        Override from MIME_OVERRIDES, or the lowercased extension itself
    """
    ext = extension.lower()
    return MIME_OVERRIDES.get(ext, ext)


def text_content_type(extension: str) -> str:
    """Return the full text content type for a file extension.

    Args:
        extension: Extension without the leading dot

    Returns:
        Content type such as "text/javascript"
    """
    return f"text/{text_subtype(extension)}"
