"""Shared test fixtures."""

from pathlib import Path

import pytest
from lazystage.config import Config
from lazystage.core.cache import DerivedAssetCache
from lazystage.core.files import FileServer
from lazystage.core.listing import DirectoryLister
from lazystage.core.paths import PathResolver
from lazystage.core.router import Router

from tests.fakes import FakeToolRunner


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Create an empty content root."""
    root = tmp_path / "www"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def test_config(content_root: Path) -> Config:
    """Create a default configuration for the content root."""
    return Config(content_root=content_root)


@pytest.fixture
def fake_runner() -> FakeToolRunner:
    return FakeToolRunner()


@pytest.fixture
def resolver(test_config: Config) -> PathResolver:
    return PathResolver(test_config.content_root, test_config.cache_root)


@pytest.fixture
def files(test_config: Config, resolver: PathResolver) -> FileServer:
    return FileServer(test_config.content_root, DirectoryLister(resolver))


@pytest.fixture
def derived(
    test_config: Config,
    resolver: PathResolver,
    files: FileServer,
    fake_runner: FakeToolRunner,
) -> DerivedAssetCache:
    return DerivedAssetCache(resolver, test_config.cache_root, files, fake_runner)


@pytest.fixture
def router(resolver: PathResolver, files: FileServer, derived: DerivedAssetCache) -> Router:
    return Router(resolver, files, derived)
