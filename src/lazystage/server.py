"""aiohttp server for Lazystage.

Application factory and route registration.
"""

from aiohttp import web

from lazystage.app_keys import router_key
from lazystage.config import Config
from lazystage.core.cache import DerivedAssetCache
from lazystage.core.files import FileServer
from lazystage.core.listing import DirectoryLister
from lazystage.core.paths import PathResolver
from lazystage.core.router import Router
from lazystage.core.tools import ToolRunner
from lazystage.core.types import URLPath


async def handle_request(request: web.Request) -> web.StreamResponse:
    """Hand every GET request to the router."""
    router = request.app[router_key]
    return await router.dispatch(URLPath(request.path))


def create_app(config: Config, *, runner: ToolRunner | None = None) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        runner: Tool runner for derived assets (default: one using the
                configured timeout)

    Returns:
        Configured aiohttp application
    """
    app = web.Application()

    resolver = PathResolver(config.content_root, config.cache_root)
    files = FileServer(config.content_root, DirectoryLister(resolver))
    derived = DerivedAssetCache(
        resolver,
        config.cache_root,
        files,
        runner or ToolRunner(config.tools.timeout),
        convert=config.tools.convert,
        pandoc=config.tools.pandoc,
        stylesheet=config.tools.stylesheet,
    )
    router = Router(
        resolver,
        files,
        derived,
        cache_url_prefix=config.cache_url_prefix,
    )

    app[router_key] = router

    app.router.add_get("/{path:.*}", handle_request)

    return app


def run_server(config: Config) -> None:
    """Run the server.

    Args:
        config: Application configuration
    """
    app = create_app(config)
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)
