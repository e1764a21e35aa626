"""Image Relay - FastAPI Application.

This module defines the application factory, the generation route, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The relay keeps no state between requests beyond the cached upstream client
held by :class:`~imagerelay.core.genai_client.ImageGenerator`:

- **Preflight** - any ``OPTIONS`` request is answered with 204 and the CORS
  headers by an HTTP middleware, before routing.  The same middleware
  dispatches methods the router has no entry for.
- **Image generation** - ``/api/generate-image`` validates the prompt,
  makes one upstream call, and returns the image as base64 JSON.
- **Static assets** - every other path is served from the static root by
  :mod:`imagerelay.api.static_files`.

Failures are raised as :class:`~imagerelay.core.errors.RelayError` and turned
into ``{"error": ...}`` responses by a single exception handler.

Endpoints
---------
========  ========================  =====================================
Method    Path                      Purpose
========  ========================  =====================================
OPTIONS   ``*``                     CORS preflight (204)
POST      ``/api/generate-image``   Generate an image from a prompt
any       ``/<path>``               Static asset, ``/`` is ``index.html``
========  ========================  =====================================

Usage
-----
CLI (installed entry point)::

    imagerelay

With uvicorn directly::

    uvicorn imagerelay.api.main:create_app --factory
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from imagerelay import __version__
from imagerelay.api.http import error_response, json_response, preflight_response, read_body
from imagerelay.api.models import GenerateImageResponse, parse_generate_request
from imagerelay.api.static_files import StaticFileResolver, serve_static, static_route
from imagerelay.core.config import RelayConfig, load_env_file
from imagerelay.core.errors import ErrorKind, RelayError
from imagerelay.core.genai_client import ImageGenerator

logger = logging.getLogger(__name__)

GENERATE_IMAGE_PATH = "/api/generate-image"

# Methods handled by the router.  OPTIONS and any other method are
# dispatched by the middleware before routing.
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log configuration problems at startup.

    A missing API key only disables generation, so it is reported as a
    warning and the server still starts.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    config: RelayConfig = app.state.config
    if not config.has_api_key:
        logger.warning("GOOGLE_GENAI_API_KEY is not set. Image generation requests will fail.")
    logger.info("Serving static files from %s", app.state.static_resolver.root)

    yield


# ---------------------------------------------------------------------------
# Routes and handlers.
# ---------------------------------------------------------------------------


async def dispatch_unrouted(request: Request, call_next) -> Response:
    """Answer requests the router has no method entry for.

    ``OPTIONS`` gets the preflight response.  Any other method outside
    :data:`ROUTED_METHODS` (``TRACE``, WebDAV verbs, ...) is dispatched the
    way the router would: 405 on the generation path, the static file
    server everywhere else.
    """
    if request.method == "OPTIONS":
        return preflight_response()
    if request.method not in ROUTED_METHODS:
        path = request.scope["path"]
        if path == GENERATE_IMAGE_PATH:
            return error_response(RelayError(ErrorKind.METHOD_NOT_ALLOWED, request.method))
        return serve_static(request.app.state.static_resolver, path)
    return await call_next(request)


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Convert a :class:`RelayError` into the JSON error envelope."""
    if exc.kind is not ErrorKind.UNEXPECTED:
        logger.info("%s %s -> %d (%r)", request.method, request.url.path, exc.status_code, exc)
    return error_response(exc)


async def generate_image(request: Request) -> JSONResponse:
    """Generate an image for the prompt in the request body.

    The request is handled as a sequence of checks; the first failing check
    decides the response:

    1. Method must be ``POST`` (405).
    2. Body must be readable and within the size limit (400 / 413).
    3. Body must be JSON (400).
    4. ``prompt`` must be a non-blank string (422).
    5. The upstream call must succeed and return an image (500 / 502).

    Args:
        request: The incoming request.

    Returns:
        200 with ``imageBase64``, ``mimeType`` and the trimmed ``prompt``.

    Raises:
        RelayError: For every failure; rendered by :func:`relay_error_handler`.
    """
    if request.method != "POST":
        raise RelayError(ErrorKind.METHOD_NOT_ALLOWED, request.method)

    config: RelayConfig = request.app.state.config
    generator: ImageGenerator = request.app.state.generator

    raw_body = await read_body(request, limit=config.max_body_bytes)
    payload = parse_generate_request(raw_body)

    logger.info("Generating image for prompt: %s", payload.prompt)
    try:
        result = await generator.generate_image(payload.prompt)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Image generation error")
        raise RelayError(ErrorKind.UNEXPECTED, str(exc)) from exc
    logger.info("Image generated successfully (%s)", result.mime_type)

    body = GenerateImageResponse(
        image_base64=result.image_data,
        mime_type=result.mime_type,
        prompt=payload.prompt,
    )
    return json_response(200, body.model_dump(by_alias=True))


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    config: RelayConfig | None = None,
    generator: ImageGenerator | None = None,
) -> FastAPI:
    """Build the relay application.

    When *config* is omitted the ``.env`` file is loaded into the environment
    and a fresh :class:`RelayConfig` is read from it.

    Args:
        config: Startup configuration.
        generator: Image generator; defaults to one bound to
            ``config.image_model``.

    Returns:
        The configured FastAPI application.
    """
    if config is None:
        load_env_file()
        config = RelayConfig()
    if generator is None:
        generator = ImageGenerator(model=config.image_model)

    app = FastAPI(
        title="Image Relay",
        description="Relays text prompts to a Gemini image model and serves the demo page.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.generator = generator
    app.state.static_resolver = StaticFileResolver(config.static_dir)

    app.middleware("http")(dispatch_unrouted)
    app.add_exception_handler(RelayError, relay_error_handler)

    app.add_api_route(GENERATE_IMAGE_PATH, generate_image, methods=ROUTED_METHODS)
    # Must stay last: it matches every path.
    app.add_api_route("/{file_path:path}", static_route, methods=ROUTED_METHODS)

    return app


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Loads ``.env``, reads :class:`RelayConfig`, configures logging and runs
    the server on ``HOST:PORT`` (default ``127.0.0.1:4000``).  A failure to
    start is logged and ends the process; there is no restart.

    This function is registered as the ``imagerelay`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    load_env_file()
    config = RelayConfig()

    logging.basicConfig(level=config.log_level.upper(), format=LOG_FORMAT)

    app = create_app(config)
    logger.info("Image relay listening on http://%s:%d", config.host, config.port)
    try:
        uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
    except OSError as exc:
        logger.error("Server failed to start: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
