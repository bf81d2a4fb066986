"""
Codesearch Web Application

Starlette app serving the code explore page::

    GET /explore/code?q=<keyword>&ext=<extension>
    GET /healthz

Start with::

    codesearch serve --port 3000

Or programmatically::

    from codesearch.web.app import create_app
    app = create_app()          # hand to uvicorn / any ASGI server
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from starlette.applications import Starlette
from starlette.authentication import AuthenticationBackend
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.templating import Jinja2Templates

from codesearch.client import CodeSearch
from codesearch.core.config import CodeSearchConfig
from codesearch.exceptions import CodeSearchError, InvalidNamespace
from codesearch.web.auth import ReverseProxyUserBackend, acting_user

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

EXPLORE_CODE = "explore_code.html"
ERROR_PAGE = "error.html"
# nginx's code for "client closed request"; the body is never read
CLIENT_CLOSED_REQUEST = 499


async def _search_until_disconnect(request: Request, client: CodeSearch, **kwargs):
    """
    Run :meth:`CodeSearch.asearch`, cancelling it if the client goes away.

    Returns ``None`` when the client disconnected before the search
    finished; the backend process has been killed by then.
    """
    task = asyncio.ensure_future(client.asearch(**kwargs))
    poll = client.config.disconnect_poll_interval
    while True:
        done, _ = await asyncio.wait({task}, timeout=poll)
        if done:
            return task.result()
        if await request.is_disconnected():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            return None


async def explore_code(request: Request) -> Response:
    client: CodeSearch = request.app.state.codesearch
    keyword = request.query_params.get("q", "")
    extname = request.query_params.get("ext", "")
    authenticated, username = acting_user(request)

    context = {
        "title": "CodeSearch",
        "page_is_explore": True,
        "page_is_explore_code": True,
        "keyword": keyword,
        "output": "",
        "searched": False,
    }

    if authenticated and keyword:
        try:
            outcome = await _search_until_disconnect(
                request, client,
                query=keyword, username=username, ext=extname,
            )
        except InvalidNamespace as exc:
            logger.warning(f"Rejected code search: {exc}")
            return templates.TemplateResponse(request, ERROR_PAGE, context, status_code=400)
        except CodeSearchError as exc:
            cause = getattr(exc, "cause", None)
            logger.error(f"Code search failed for {username}: {exc}" + (f" ({cause})" if cause else ""))
            return templates.TemplateResponse(request, ERROR_PAGE, context, status_code=500)

        if outcome is None:
            logger.info(f"Client disconnected during code search for {username}")
            return Response(status_code=CLIENT_CLOSED_REQUEST)

        context["output"] = outcome.fragment
        context["searched"] = outcome.backend_invoked

    return templates.TemplateResponse(request, EXPLORE_CODE, context)


async def healthz(request: Request) -> JSONResponse:
    client: CodeSearch = request.app.state.codesearch
    status = client.health()
    return JSONResponse(status, status_code=200 if status["ready"] else 503)


def create_app(
    config: CodeSearchConfig | None = None,
    client: CodeSearch | None = None,
    *,
    auth_backend: AuthenticationBackend | None = None,
    debug: bool = False,
) -> Starlette:
    """
    Build the Starlette application.

    Args:
        config: Configuration; ignored when *client* is given.
            Defaults to ``CodeSearchConfig.from_env()``.
        client: Pre-built facade (tests inject one with a fake backend).
        auth_backend: Authentication backend.  Defaults to
            :class:`ReverseProxyUserBackend` reading ``config.auth_header``.
        debug: Starlette debug mode.
    """
    client = client or CodeSearch(config=config or CodeSearchConfig.from_env())
    backend = auth_backend or ReverseProxyUserBackend(client.config.auth_header)

    app = Starlette(
        debug=debug,
        routes=[
            Route("/explore/code", explore_code, methods=["GET"]),
            Route("/healthz", healthz, methods=["GET"]),
        ],
        middleware=[Middleware(AuthenticationMiddleware, backend=backend)],
    )
    app.state.codesearch = client
    return app
