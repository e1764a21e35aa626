"""Response helpers and request body reading for the relay API.

Every JSON response the relay sends goes through :func:`json_response`,
which attaches the CORS headers and disables caching.  Preflight requests
are answered by :func:`preflight_response`.  :func:`read_body` buffers a
request body while enforcing the size limit.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.requests import ClientDisconnect

from imagerelay.api.models import ErrorResponse
from imagerelay.core.config import DEFAULT_MAX_BODY_BYTES
from imagerelay.core.errors import ErrorKind, RelayError

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, x-goog-api-key",
    "Access-Control-Max-Age": "86400",
}

JSON_MEDIA_TYPE = "application/json; charset=utf-8"
JSON_HEADERS: dict[str, str] = {"Cache-Control": "no-store"}

MIME_TYPES: dict[str, str] = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
}
FALLBACK_MIME_TYPE = "application/octet-stream"


def content_type_for(path: Path | str) -> str:
    """Return the Content-Type for *path* based on its extension."""
    return MIME_TYPES.get(Path(path).suffix.lower(), FALLBACK_MIME_TYPE)


def json_response(status_code: int, payload: dict, headers: dict[str, str] | None = None) -> JSONResponse:
    """Build a JSON response carrying the CORS and no-store headers.

    Args:
        status_code: HTTP status code.
        payload: JSON-serialisable body.
        headers: Extra headers, applied last.

    Returns:
        The response, ready to be returned from a route.
    """
    merged = {**CORS_HEADERS, **JSON_HEADERS, **(headers or {})}
    return JSONResponse(
        content=payload,
        status_code=status_code,
        headers=merged,
        media_type=JSON_MEDIA_TYPE,
    )


def error_response(error: RelayError) -> JSONResponse:
    """Render *error* as the ``{"error": ...}`` envelope."""
    headers = None
    if error.kind is ErrorKind.PAYLOAD_TOO_LARGE:
        # The rest of the oversized body is never read; drop the connection.
        headers = {"Connection": "close"}
    body = ErrorResponse(error=error.message)
    return json_response(error.status_code, body.model_dump(), headers=headers)


def preflight_response() -> Response:
    """Answer a CORS preflight: 204, CORS headers, empty body."""
    return Response(status_code=204, headers=dict(CORS_HEADERS))


async def read_body(request: Request, limit: int = DEFAULT_MAX_BODY_BYTES) -> str:
    """Buffer the request body and decode it as UTF-8.

    Reading stops as soon as more than *limit* bytes have arrived.  A
    declared ``Content-Length`` above the limit is rejected before reading.

    Args:
        request: The incoming request.
        limit: Maximum number of body bytes accepted.

    Returns:
        The complete body as text.

    Raises:
        RelayError: ``PAYLOAD_TOO_LARGE`` when the limit is exceeded,
            ``BODY_READ_FAILED`` when the client disconnects or the body is
            not valid UTF-8.
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise RelayError(ErrorKind.PAYLOAD_TOO_LARGE, f"declared length {declared} exceeds {limit}")

    body = bytearray()
    try:
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) > limit:
                raise RelayError(ErrorKind.PAYLOAD_TOO_LARGE, f"body exceeds {limit} bytes")
    except ClientDisconnect as exc:
        raise RelayError(ErrorKind.BODY_READ_FAILED, "client disconnected") from exc

    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RelayError(ErrorKind.BODY_READ_FAILED, "body is not valid UTF-8") from exc
