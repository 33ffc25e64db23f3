"""FastAPI application for the Cecilefy download proxy."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from starlette.background import BackgroundTask

from cecilefy import __version__
from cecilefy.errors import InputError, StreamError, UpstreamStatusError
from cecilefy.extensions import SuffixFactory, random_suffix
from cecilefy.relay import StreamSession
from cecilefy.utils import build_proxy_request

from .config import load_settings
from .models import HealthResponse, Settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        force=True
    )
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    suffix_factory: SuffixFactory = random_suffix,
) -> FastAPI:
    """Build the app. ``transport`` and ``suffix_factory`` exist for tests."""
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the shared upstream client for the app's lifetime."""
        timeout = httpx.Timeout(settings.connect_timeout, read=settings.read_timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            app.state.http_client = client
            yield
        app.state.http_client = None

    app = FastAPI(
        title="Cecilefy Proxy",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings

    @app.middleware("http")
    async def allow_any_origin(request: Request, call_next):
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.get("/api/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        return HealthResponse(version=__version__)

    @app.get("/proxy")
    async def proxy(request: Request, url: Optional[str] = None, filename: Optional[str] = None):
        """Fetch ``url`` and hand it back as an attachment."""
        try:
            proxy_request = build_proxy_request(url, filename)
        except InputError as e:
            logger.info(f"Rejected proxy url {url!r}: {e}")
            return PlainTextResponse("Invalid url", status_code=400)

        session = StreamSession(proxy_request, suffix_factory=suffix_factory)
        try:
            await session.fetch(request.app.state.http_client, buffered=settings.buffer_upstream)
            resolved = await session.resolve()
        except UpstreamStatusError as e:
            logger.warning(f"Upstream error for {url}: {e}")
            return PlainTextResponse(str(e), status_code=502)
        except StreamError as e:
            return PlainTextResponse(str(e), status_code=500)
        except Exception as e:
            logger.error(f"Proxy error for {url}: {e}", exc_info=True)
            await session.fail()
            message = f"Proxy error: {e}" if settings.expose_error_details else "Proxy error"
            return PlainTextResponse(message, status_code=500)

        logger.info(f"Relaying {url} as {resolved.filename} ({resolved.content_type})")
        headers = session.commit_headers()
        headers["Access-Control-Expose-Headers"] = "Content-Disposition"
        return StreamingResponse(
            session.relay(),
            status_code=200,
            headers=headers,
            background=BackgroundTask(session.aclose),
        )

    # Frontend page, mounted last so it does not shadow the routes above
    static_dir = Path(settings.static_dir) if settings.static_dir else None
    if static_dir and static_dir.exists():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    else:
        logger.warning(f"Frontend directory not found: {static_dir}")

    return app


_settings = load_settings()
configure_logging(_settings)
app = create_app(_settings)
