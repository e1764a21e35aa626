"""Directory-traversal-safe static file serving.

Every path that is not an API route is mapped onto a single root directory
by :class:`StaticFileResolver`.  The resolver never returns a path outside
that root:

- ``/`` is served as ``index.html``
- a path that still holds a ``..`` segment after normalisation, or contains
  a NUL byte, is rejected as a bad request (400)
- a path that resolves outside the root (for example through a symlink) is
  rejected as a bad request (400)
- a path that does not name an existing regular file is not found (404)

Matched files are streamed with :class:`QuietFileResponse`, which ends the
response without a body if reading the file fails mid-transfer.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path

from fastapi import Request
from fastapi.responses import FileResponse, PlainTextResponse, Response
from starlette.types import Receive, Scope, Send

from imagerelay.api.http import content_type_for
from imagerelay.core.errors import ErrorKind, RelayError

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


class StaticFileResolver:
    """Maps URL paths to files under a fixed root directory.

    Attributes:
        root: Absolute, symlink-resolved root directory.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def resolve(self, url_path: str) -> Path:
        """Return the file under :attr:`root` that *url_path* names.

        Args:
            url_path: Percent-decoded URL path, e.g. ``/css/styles.css``.

        Returns:
            Absolute path of an existing regular file inside the root.

        Raises:
            RelayError: ``BAD_PATH`` for traversal attempts and malformed
                paths, ``NOT_FOUND`` when no such file exists.
        """
        if url_path in ("", "/"):
            url_path = "/" + INDEX_FILE

        if "\x00" in url_path:
            raise RelayError(ErrorKind.BAD_PATH, "NUL byte in path")

        # Normalise as a relative path so leading ".." segments survive
        # and can be rejected.
        relative = posixpath.normpath(url_path.replace("\\", "/").lstrip("/"))
        if relative == "." or ".." in relative.split("/"):
            raise RelayError(ErrorKind.BAD_PATH, f"traversal in {url_path!r}")

        candidate = (self.root / relative).resolve()
        if not candidate.is_relative_to(self.root):
            raise RelayError(ErrorKind.BAD_PATH, f"{url_path!r} resolves outside the static root")

        if not candidate.is_file():
            raise RelayError(ErrorKind.NOT_FOUND, f"no file for {url_path!r}")
        return candidate


class QuietFileResponse(FileResponse):
    """File response that ends silently if the file cannot be streamed."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except OSError as exc:
            logger.warning("Static transfer of %s aborted: %s", self.path, exc)


def serve_static(resolver: StaticFileResolver, url_path: str) -> Response:
    """Build the response for a static asset request.

    Args:
        resolver: Resolver bound to the static root.
        url_path: Percent-decoded URL path of the request.

    Returns:
        A streamed file (200), or a plain-text 400/404 response.
    """
    try:
        file_path = resolver.resolve(url_path)
    except RelayError as exc:
        logger.debug("Static request %r rejected: %r", url_path, exc)
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    return QuietFileResponse(
        file_path,
        media_type=content_type_for(file_path),
        headers={"Cache-Control": "no-cache"},
    )


async def static_route(request: Request) -> Response:
    """Catch-all route: serve the request path from the static root."""
    return serve_static(request.app.state.static_resolver, request.scope["path"])
