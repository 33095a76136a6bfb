"""Configuration management for Lazystage.

Supports TOML configuration format with auto-discovery. The content root is
always given on the command line; the file only tunes the server and tools.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from lazystage.core.types import DerivationKind

CONFIG_FILENAME = "lazystage.toml"


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8123


@dataclass(frozen=True)
class CacheConfig:
    """Derived-asset cache configuration."""

    dir_name: str = ".cache"


@dataclass(frozen=True)
class ToolsConfig:
    """External tool configuration."""

    convert: str = "convert"
    pandoc: str = "pandoc"
    stylesheet: str = "/style.css"
    timeout: float = 60.0


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    content_root: Path
    server: ServerConfig = field(default_factory=ServerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    config_path: Path | None = None

    @property
    def cache_root(self) -> Path:
        """Reserved cache area under the content root."""
        return self.content_root / self.cache.dir_name

    @property
    def thumbnails_dir(self) -> Path:
        """Cache subdirectory holding generated thumbnails."""
        return self.cache_root / DerivationKind.THUMBNAIL.cache_subdir

    @property
    def renders_dir(self) -> Path:
        """Cache subdirectory holding rendered documents."""
        return self.cache_root / DerivationKind.RENDER.cache_subdir

    @property
    def cache_url_prefix(self) -> str:
        """URL path addressing the reserved cache area."""
        return f"/{self.cache.dir_name}"

    @classmethod
    def load(cls, content_root: Path, config_path: Path | None = None) -> "Config":
        """Load configuration for a content root.

        If config_path is provided, loads from that file. Otherwise, searches
        for lazystage.toml in the current directory and parents.

        Args:
            content_root: Directory to serve
            config_path: Optional explicit path to config file

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            NotADirectoryError: If content_root is not a directory
            ValueError: If configuration is invalid
        """
        root = content_root.resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Content root is not a directory: {content_root}")

        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return cls._load_from_file(root, config_path)

        discovered_path = cls._discover_config()
        if discovered_path is None:
            return cls(content_root=root)

        return cls._load_from_file(root, discovered_path)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents.

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _load_from_file(cls, content_root: Path, path: Path) -> "Config":
        """Load configuration from a specific file.

        Args:
            content_root: Resolved content root
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {path}: {e}") from e

        return cls(
            content_root=content_root,
            server=cls._parse_server(data.get("server")),
            cache=cls._parse_cache(data.get("cache")),
            tools=cls._parse_tools(data.get("tools")),
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        """Parse server configuration section.

        Args:
            data: Raw server section data

        Returns:
            ServerConfig instance
        """
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", ServerConfig.host)
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", ServerConfig.port)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")

        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_cache(cls, data: object) -> CacheConfig:
        """Parse cache configuration section.

        The cache area must be a single dot-prefixed directory name so that
        it stays out of directory listings.

        Args:
            data: Raw cache section data

        Returns:
            CacheConfig instance
        """
        if data is None:
            return CacheConfig()

        if not isinstance(data, dict):
            raise ValueError("cache section must be a dictionary")

        dir_name = data.get("dir_name", CacheConfig.dir_name)
        if not isinstance(dir_name, str):
            raise ValueError("cache.dir_name must be a string")
        if not dir_name.startswith(".") or "/" in dir_name or dir_name in {".", ".."}:
            raise ValueError("cache.dir_name must be a single dot-prefixed directory name")

        return CacheConfig(dir_name=dir_name)

    @classmethod
    def _parse_tools(cls, data: object) -> ToolsConfig:
        """Parse tools configuration section.

        Args:
            data: Raw tools section data

        Returns:
            ToolsConfig instance
        """
        if data is None:
            return ToolsConfig()

        if not isinstance(data, dict):
            raise ValueError("tools section must be a dictionary")

        values: dict[str, str] = {}
        for key in ("convert", "pandoc", "stylesheet"):
            value = data.get(key, getattr(ToolsConfig, key))
            if not isinstance(value, str) or not value:
                raise ValueError(f"tools.{key} must be a non-empty string")
            values[key] = value

        timeout = data.get("timeout", ToolsConfig.timeout)
        if not isinstance(timeout, int | float) or isinstance(timeout, bool):
            raise ValueError("tools.timeout must be a number")
        if timeout <= 0:
            raise ValueError("tools.timeout must be positive")

        return ToolsConfig(timeout=float(timeout), **values)

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
    ) -> "Config":
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.

        Args:
            host: Override server.host
            port: Override server.port

        Returns:
            New Config instance with overrides applied
        """
        server = replace(
            self.server,
            host=host if host is not None else self.server.host,
            port=port if port is not None else self.server.port,
        )
        return replace(self, server=server)
