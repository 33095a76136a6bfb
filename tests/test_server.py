"""End-to-end tests for the HTTP surface."""

from pathlib import Path

import pytest
from aiohttp import web
from lazystage.app_keys import router_key
from lazystage.config import Config
from lazystage.core.files import NOT_FOUND_BODY
from lazystage.server import create_app

from tests.fakes import FakeToolRunner


@pytest.fixture
def app(test_config: Config, fake_runner: FakeToolRunner) -> web.Application:
    return create_app(test_config, runner=fake_runner)


@pytest.fixture
def client(app: web.Application, aiohttp_client):
    """Create test client for the app."""
    return aiohttp_client(app)


class TestCreateApp:
    """Tests for create_app()."""

    def test__valid_config__returns_configured_app(self, test_config: Config) -> None:
        """Register the router on the app."""
        app = create_app(test_config)

        assert router_key in app
        assert app[router_key].classify("/*").path == test_config.content_root


class TestTextFiles:
    """Text responses."""

    @pytest.mark.asyncio
    async def test__known_text_file__returns_bytes_and_type(
        self, content_root: Path, client
    ) -> None:
        """Return text bytes with their content type."""
        (content_root / "style.css").write_text("body { color: red; }")

        test_client = await client
        response = await test_client.get("/style.css")

        assert response.status == 200
        assert await response.read() == b"body { color: red; }"
        assert response.headers["Content-Type"] == "text/css; charset=utf-8"
        assert response.headers["Cache-Control"] == "public, max-age=0"

    @pytest.mark.asyncio
    async def test__root__serves_index_file(self, content_root: Path, client) -> None:
        """Serve the index file at /."""
        (content_root / "index").write_text("welcome")

        test_client = await client
        response = await test_client.get("/")

        assert response.status == 200
        assert await response.text() == "welcome"

    @pytest.mark.asyncio
    async def test__root_index_directory__serves_listing(
        self, content_root: Path, client
    ) -> None:
        """List the index directory at /."""
        (content_root / "index").mkdir()
        (content_root / "index" / "home.txt").write_text("x")

        test_client = await client
        response = await test_client.get("/")

        assert response.status == 200
        assert '<a href="/index/home.txt">home.txt</a>' in await response.text()

    @pytest.mark.asyncio
    async def test__source_round_trip__matches_text(self, content_root: Path, client) -> None:
        """Match the text response for .source."""
        (content_root / "doc.md").write_text("# Title\n\nBody")

        test_client = await client
        plain = await test_client.get("/doc.md")
        source = await test_client.get("/doc.md.source")

        assert await source.read() == await plain.read()
        assert source.headers["Content-Type"] == "text/plain; charset=utf-8"


class TestBinaryFiles:
    """Binary responses."""

    @pytest.mark.asyncio
    async def test__binary_file__returns_bytes(self, content_root: Path, client) -> None:
        """Return binary bytes."""
        (content_root / "a.png").write_bytes(b"\x89PNG\r\n")

        test_client = await client
        response = await test_client.get("/a.png")

        assert response.status == 200
        assert await response.read() == b"\x89PNG\r\n"
        assert response.headers["Cache-Control"] == "public, max-age=3600"


class TestNotFound:
    """404 responses."""

    @pytest.mark.asyncio
    async def test__missing_path__fixed_body(self, client) -> None:
        """Return the fixed body for a missing path."""
        test_client = await client
        response = await test_client.get("/nope.txt")

        assert response.status == 404
        assert await response.text() == NOT_FOUND_BODY

    @pytest.mark.asyncio
    async def test__missing_path__custom_page(self, content_root: Path, client) -> None:
        """Return 404.html for a missing path."""
        (content_root / "404.html").write_text("<h1>Lost</h1>")

        test_client = await client
        response = await test_client.get("/nope.png")

        assert response.status == 404
        assert await response.text() == "<h1>Lost</h1>"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/.cache", "/.cache/thumbnails/x.png", "/.cache/.gitignore"])
    async def test__cache_area__locked_out(self, content_root: Path, client, path: str) -> None:
        """Lock out the cache area."""
        thumbnails = content_root / ".cache" / "thumbnails"
        thumbnails.mkdir(parents=True)
        (thumbnails / "x.png").write_bytes(b"cached")
        (content_root / ".cache" / ".gitignore").write_text("*\n")

        test_client = await client
        response = await test_client.get(path)

        assert response.status == 404


class TestListings:
    """Directory listings."""

    @pytest.mark.asyncio
    async def test__directory__lists_children(self, content_root: Path, client) -> None:
        """List a directory's children."""
        docs = content_root / "docs"
        docs.mkdir()
        for name in ("b.md", "a.txt", ".draft"):
            (docs / name).write_text(name)

        test_client = await client
        response = await test_client.get("/docs")
        html = await response.text()

        assert response.status == 200
        assert html.index('href="/docs/a.txt"') < html.index('href="/docs/b.md"')
        assert ".draft" not in html
        assert html.count(">..</a>") == 1

    @pytest.mark.asyncio
    async def test__tree_marker__lists_root(self, content_root: Path, client) -> None:
        """List the content root at /*."""
        (content_root / "top.txt").write_text("x")
        (content_root / ".cache").mkdir()

        test_client = await client
        response = await test_client.get("/*")
        html = await response.text()

        assert response.status == 200
        assert '<a href="/top.txt">top.txt</a>' in html
        assert ".cache" not in html


class TestDerivedAssets:
    """Thumbnails and rendered documents."""

    @pytest.mark.asyncio
    async def test__thumbnail__generated_once_then_cached(
        self,
        content_root: Path,
        client,
        fake_runner: FakeToolRunner,
    ) -> None:
        """Generate a thumbnail once, then serve it from cache."""
        (content_root / "a.png").write_bytes(b"\x89PNG-full-size")
        fake_runner.output = b"\x89PNG-thumb"

        test_client = await client
        first = await test_client.get("/a.png.thumbnail")
        first_body = await first.read()
        cached = list((content_root / ".cache" / "thumbnails").iterdir())

        second = await test_client.get("/a.png.thumbnail")

        assert first.status == 200
        assert first_body == b"\x89PNG-thumb"
        assert len(cached) == 1
        assert second.status == 200
        assert await second.read() == first_body
        assert len(fake_runner.calls) == 1

    @pytest.mark.asyncio
    async def test__thumbnail_of_missing_source__returns_404(
        self, client, fake_runner: FakeToolRunner
    ) -> None:
        """Return 404 for a thumbnail of a missing source."""
        test_client = await client
        response = await test_client.get("/ghost.png.thumbnail")

        assert response.status == 404
        assert fake_runner.calls == []

    @pytest.mark.asyncio
    async def test__render__returns_html(
        self,
        content_root: Path,
        client,
        fake_runner: FakeToolRunner,
    ) -> None:
        """Return rendered HTML."""
        (content_root / "notes").mkdir()
        (content_root / "notes" / "todo.md").write_text("# Todo")
        fake_runner.output = b"<html><body><h1>Todo</h1></body></html>"

        test_client = await client
        response = await test_client.get("/notes/todo.md.render")

        assert response.status == 200
        assert "<h1>Todo</h1>" in await response.text()
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert fake_runner.calls[0][:2] == ["pandoc", str(content_root / "notes" / "todo.md")]
        assert "--standalone" in fake_runner.calls[0]

    @pytest.mark.asyncio
    async def test__tool_failure__returns_500(
        self,
        content_root: Path,
        client,
        fake_runner: FakeToolRunner,
    ) -> None:
        """Return 500 when a tool fails."""
        (content_root / "a.png").write_bytes(b"png")
        fake_runner.fail = True

        test_client = await client
        response = await test_client.get("/a.png.thumbnail")

        assert response.status == 500
        assert await response.text() == "Internal server error."
