"""Core type definitions."""

from enum import Enum
from typing import NewType

# Decoded URL path of a request (e.g., "/photos/a.png")
# Distinct from filesystem Path to catch type mismatches
URLPath = NewType("URLPath", str)


class DerivationKind(Enum):
    """Kinds of assets derived from a source file on first request."""

    THUMBNAIL = "thumbnail"
    RENDER = "render"

    @property
    def marker(self) -> str:
        """URL suffix that requests this derivation (e.g., ".thumbnail")."""
        return f".{self.value}"

    @property
    def cache_subdir(self) -> str:
        """Name of the cache subdirectory holding entries of this kind."""
        return f"{self.value}s"
