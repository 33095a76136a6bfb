"""Application keys for type-safe app configuration access."""

from aiohttp import web

from lazystage.core.router import Router

router_key = web.AppKey("router", Router)
