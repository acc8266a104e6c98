"""RoomRender — FastAPI Application.

This module defines the application factory, all HTTP routes, the mapping
from render errors to responses, and the ``main()`` CLI function that
launches the uvicorn server.

Architecture
------------
The relay is stateless apart from files on disk:

- **Configuration** is one :class:`~roomrender.core.config.RoomRenderConfig`
  built at startup and passed to :func:`create_app`.  Routes read it from
  ``app.state.config``; nothing reads the environment after startup.
- **Rendering** is delegated to :class:`~roomrender.core.renderer.Renderer`,
  created by the lifespan handler around one shared ``httpx.AsyncClient``.
- **Generated images** land in ``results/`` and are served by Starlette's
  ``StaticFiles`` under ``/results``.
- **Uploads** are staged in ``uploads/`` only while their request runs.

Endpoints
---------
========  =====================  ==========================================
Method    Path                   Purpose
========  =====================  ==========================================
GET       ``/``                  Serve the landing page
GET       ``/health``            Liveness payload
POST      ``/render``            Render a prompt and/or a room image
GET       ``/results/{file}``    Generated PNGs (static)
GET       ``/static/{file}``     Landing page assets (static)
========  =====================  ==========================================

Usage
-----
CLI (installed entry point)::

    roomrender

Direct invocation::

    python -m roomrender.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from roomrender import __version__
from roomrender.api.models import ErrorResponse, HealthResponse, RenderResponse
from roomrender.core.config import RoomRenderConfig
from roomrender.core.errors import RenderError, UploadTooLargeError
from roomrender.core.render_request import build_edit_request, build_generate_request
from roomrender.core.renderer import Renderer
from roomrender.core.storage import staged_upload

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Room for the multipart boundaries and the prompt/strength fields.
FORM_OVERHEAD_BYTES = 64 * 1024

router = APIRouter()


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    config: RoomRenderConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration.  A fresh
            :class:`RoomRenderConfig` (environment + ``.env``) is built when
            omitted.
        transport: Optional httpx transport for the vendor client.  Tests
            pass an ``httpx.MockTransport`` here; production leaves it unset.

    Returns:
        The configured application.
    """
    config = config or RoomRenderConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the shared vendor client on startup and close it on shutdown."""
        # --- Startup -------------------------------------------------------
        client = httpx.AsyncClient(timeout=config.request_timeout, transport=transport)
        app.state.renderer = Renderer(config, client)
        if not config.has_credential:
            logger.warning("STABILITY_API_KEY is not set; POST /render will fail.")
        logger.info(
            "Renderer ready (engine=%s, results=%s).",
            config.stability_engine,
            config.results_dir,
        )

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        await client.aclose()
        logger.info("Vendor client closed on shutdown.")

    app = FastAPI(
        title="RoomRender",
        description="Relay from interior render requests to the Stability image API.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Generated PNGs and landing page assets are served straight from disk.
    app.mount("/results", StaticFiles(directory=str(config.results_dir)), name="results")
    app.mount(
        "/static",
        StaticFiles(directory=str(config.public_dir), check_dir=False),
        name="static",
    )

    @app.middleware("http")
    async def reject_oversized_render(request: Request, call_next):
        """Refuse a render whose declared body is already over the upload cap.

        Runs before Starlette parses the form, so such a body is never spooled.
        Chunked bodies without a length fall through to :func:`staged_upload`.
        Requests without a credential also fall through: that check comes first.
        """
        if request.method == "POST" and request.url.path == "/render" and config.has_credential:
            declared = request.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > config.max_upload_bytes + FORM_OVERHEAD_BYTES:
                logger.info("Rejected /render body of %s bytes before parsing", declared)
                return await render_error_handler(
                    request,
                    UploadTooLargeError(
                        detail=f"roomImage exceeds the {config.max_upload_bytes} byte limit"
                    ),
                )
        return await call_next(request)

    app.add_exception_handler(RenderError, render_error_handler)
    app.include_router(router)
    return app


async def render_error_handler(request: Request, exc: RenderError) -> JSONResponse:
    """Convert a :class:`RenderError` into the ``{error, status?, detail?}`` body."""
    body = ErrorResponse(error=exc.message, status=exc.upstream_status, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    """Serve the landing page.

    Raises:
        HTTPException: 404 if ``index.html`` is not found.
    """
    config: RoomRenderConfig = request.app.state.config
    index_path = config.public_dir / "index.html"
    if index_path.exists():
        return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
    raise HTTPException(status_code=404, detail="index.html not found")


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Return the liveness payload.  No side effects."""
    return HealthResponse(ok=True, provider="stability", time=datetime.now(timezone.utc))


@router.post(
    "/render",
    response_model=RenderResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def render(
    request: Request,
    prompt: str | None = Form(default=None),
    strength: str | None = Form(default=None),
    room_image: UploadFile | None = File(default=None, alias="roomImage"),
) -> RenderResponse:
    """Render a prompt, or restyle an uploaded room image, and return its URL.

    This endpoint:

    1. Refuses to run without a vendor credential (no network traffic).
    2. Stages ``roomImage`` in ``uploads/`` when one was sent.
    3. Normalises the form fields into an edit or generate request.
    4. Calls the vendor, stores the PNG and returns ``{imageUrl}``.

    The staged upload is removed before the response is sent, whatever the
    outcome.

    Raises:
        RenderError: Mapped to the JSON error body by
            :func:`render_error_handler`.
    """
    config: RoomRenderConfig = request.app.state.config
    renderer: Renderer = request.app.state.renderer

    config.require_api_key()

    try:
        if room_image is not None and room_image.filename:
            async with staged_upload(
                room_image, config.uploads_dir, config.max_upload_bytes
            ) as image_path:
                render_request = build_edit_request(
                    prompt,
                    strength,
                    image_path=image_path,
                    image_filename=room_image.filename,
                    image_content_type=room_image.content_type,
                    max_prompt_length=config.max_prompt_length,
                )
                stored = await renderer.render(render_request)
        else:
            render_request = build_generate_request(
                prompt, max_prompt_length=config.max_prompt_length
            )
            stored = await renderer.render(render_request)
    except RenderError:
        raise
    except Exception as exc:
        logger.exception("Unexpected error while rendering")
        raise RenderError(detail=str(exc)) from exc

    return RenderResponse(image_url=stored.url)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Host, port and log level come from :class:`RoomRenderConfig`
    (``HOST``, ``PORT``, ``LOG_LEVEL``).  Defaults to ``0.0.0.0:10000``.

    This function is registered as the ``roomrender`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    config = RoomRenderConfig()
    logging.basicConfig(level=config.log_level.upper(), format=LOG_FORMAT)
    logger.info("Server listening on http://localhost:%d", config.port)

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level,
    )


if __name__ == "__main__":
    main()
