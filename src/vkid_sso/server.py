"""Development server for trying VK ID sign-in locally.

Serves the VK ID routes with an in-memory account store. Configure with
``SSO_VK_*`` environment variables (a ``.env`` file is read), plus
``SSO_VK_SESSION_SECRET`` for signing the session cookie.
"""

from __future__ import annotations

import argparse
import logging
import os
import secrets

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from vkid_sso.models.config import VKIDConfig
from vkid_sso.plugin import SESSION_UID_KEY, VKIDPlugin
from vkid_sso.routes import create_app
from vkid_sso.services.store import InMemoryAccountStore

logger = logging.getLogger(__name__)


async def _home(request: Request) -> Response:
    uid = request.session.get(SESSION_UID_KEY)
    if uid is None:
        return PlainTextResponse("Not signed in. Visit /auth/vkid to sign in.")
    return PlainTextResponse(f"Signed in as uid {uid}")


def build_app(plugin: VKIDPlugin, session_secret: str) -> Starlette:
    """VK ID routes plus a home page, behind signed-cookie sessions."""
    app = create_app(
        plugin,
        middleware=[Middleware(SessionMiddleware, secret_key=session_secret)],
    )
    app.router.routes.append(Route("/", _home, methods=["GET"]))
    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="VK ID sign-in development server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=4567)
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    config = VKIDConfig.from_env()
    if not config.is_configured:
        logger.warning("SSO_VK_CLIENT_ID / SSO_VK_CLIENT_SECRET not set")

    session_secret = os.getenv("SSO_VK_SESSION_SECRET") or secrets.token_hex(32)
    plugin = VKIDPlugin(config, InMemoryAccountStore())

    uvicorn.run(build_app(plugin, session_secret), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
