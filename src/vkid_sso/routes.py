"""Starlette routes for VK ID sign-in.

Mounts the initiation, callback and unlink endpoints. The host installs
session middleware (``request.session`` must be available) and is
responsible for CSRF protection of the unlink form.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response
from starlette.routing import Route

from vkid_sso.models.config import AUTH_PATH, CALLBACK_PATH, DEAUTH_PATH
from vkid_sso.models.errors import ConfigurationError, IdentityLinkError
from vkid_sso.plugin import SESSION_UID_KEY, VKIDPlugin

logger = logging.getLogger(__name__)


class VKIDRoutes:
    """HTTP handlers delegating to a VKIDPlugin."""

    def __init__(self, plugin: VKIDPlugin) -> None:
        self.plugin = plugin

    @property
    def routes(self) -> list[Route]:
        return [
            Route(AUTH_PATH, self._handle_start, methods=["GET"]),
            Route(CALLBACK_PATH, self._handle_callback, methods=["GET"]),
            Route(DEAUTH_PATH, self._handle_deauth, methods=["POST"]),
        ]

    async def _handle_start(self, request: Request) -> Response:
        """Redirect the user agent to VK ID."""
        try:
            authorization_url = self.plugin.start(
                request.session, request.query_params.get("returnTo")
            )
        except ConfigurationError as e:
            logger.error(f"Cannot start VK ID sign-in: {e}")
            return PlainTextResponse(str(e), status_code=500)
        except Exception as e:
            logger.error(f"Failed to start VK ID sign-in: {e}")
            return PlainTextResponse(
                "Failed to initiate VK authentication", status_code=500
            )

        return RedirectResponse(authorization_url, status_code=302)

    async def _handle_callback(self, request: Request) -> Response:
        """Complete sign-in, or answer with the failure's status and message."""
        outcome = await self.plugin.callback(request.query_params, request.session)

        if outcome.is_success():
            return RedirectResponse(outcome.redirect_url, status_code=302)

        return PlainTextResponse(
            outcome.error.public_message, status_code=outcome.status_code
        )

    async def _handle_deauth(self, request: Request) -> Response:
        """Unlink VK ID from the signed-in account."""
        try:
            uid = int(request.session[SESSION_UID_KEY])
        except (KeyError, TypeError, ValueError):
            return PlainTextResponse("Not signed in", status_code=401)

        try:
            redirect_url = await self.plugin.deauth(uid)
        except IdentityLinkError as e:
            logger.error(f"Could not remove VK ID link for uid {uid}: {e}")
            return PlainTextResponse("Could not unlink VK ID", status_code=500)

        return RedirectResponse(redirect_url, status_code=302)


def create_routes(plugin: VKIDPlugin) -> list[Route]:
    """Routes for mounting into the host's Starlette application."""
    return VKIDRoutes(plugin).routes


def create_app(
    plugin: VKIDPlugin, middleware: Sequence[Middleware] | None = None
) -> Starlette:
    """Standalone Starlette app serving the VK ID routes.

    Args:
        plugin: Configured plugin
        middleware: Must include session middleware
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        await plugin.aclose()

    return Starlette(
        routes=create_routes(plugin),
        middleware=list(middleware or []),
        lifespan=lifespan,
    )
