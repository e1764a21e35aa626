"""Error kinds raised by the relay and their HTTP mapping.

Every failure the relay reports to a client is a :class:`RelayError` tagged
with one :class:`ErrorKind`.  The kind alone decides the HTTP status code and
the client-facing message, via :data:`ERROR_TABLE`, so route handlers never
carry their own status conditionals.

Kinds
-----
==================  ======  ===================================
Kind                Status  Message
==================  ======  ===================================
METHOD_NOT_ALLOWED  405     Method Not Allowed
BODY_READ_FAILED    400     Failed to read request body
PAYLOAD_TOO_LARGE   413     Payload too large
INVALID_JSON        400     Invalid JSON payload
PROMPT_REQUIRED     422     Prompt is required
MISSING_API_KEY     500     Server missing configuration
NO_IMAGE_CONTENT    502     No image content returned
UNEXPECTED          500     Unexpected server error: <detail>
BAD_PATH            400     Bad request
NOT_FOUND           404     Not found
==================  ======  ===================================
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure categories the relay can report."""

    METHOD_NOT_ALLOWED = "method_not_allowed"
    BODY_READ_FAILED = "body_read_failed"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INVALID_JSON = "invalid_json"
    PROMPT_REQUIRED = "prompt_required"
    MISSING_API_KEY = "missing_api_key"
    NO_IMAGE_CONTENT = "no_image_content"
    UNEXPECTED = "unexpected"
    BAD_PATH = "bad_path"
    NOT_FOUND = "not_found"


ERROR_TABLE: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.METHOD_NOT_ALLOWED: (405, "Method Not Allowed"),
    ErrorKind.BODY_READ_FAILED: (400, "Failed to read request body"),
    ErrorKind.PAYLOAD_TOO_LARGE: (413, "Payload too large"),
    ErrorKind.INVALID_JSON: (400, "Invalid JSON payload"),
    ErrorKind.PROMPT_REQUIRED: (422, "Prompt is required"),
    ErrorKind.MISSING_API_KEY: (500, "Server missing configuration"),
    ErrorKind.NO_IMAGE_CONTENT: (502, "No image content returned"),
    ErrorKind.UNEXPECTED: (500, "Unexpected server error"),
    ErrorKind.BAD_PATH: (400, "Bad request"),
    ErrorKind.NOT_FOUND: (404, "Not found"),
}


class RelayError(Exception):
    """A failure that terminates the current request.

    Args:
        kind: The error category; selects status code and message.
        detail: Optional internal detail.  It is only shown to the client
            for :attr:`ErrorKind.UNEXPECTED`, where it is appended to the
            message; for every other kind it is kept for logging.
    """

    def __init__(self, kind: ErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(detail or ERROR_TABLE[kind][1])

    @property
    def status_code(self) -> int:
        return ERROR_TABLE[self.kind][0]

    @property
    def message(self) -> str:
        """Client-facing message for the ``error`` field of the envelope."""
        base = ERROR_TABLE[self.kind][1]
        if self.kind is ErrorKind.UNEXPECTED and self.detail:
            return f"{base}: {self.detail}"
        return base

    def __repr__(self) -> str:
        return f"RelayError(kind={self.kind.name}, detail={self.detail!r})"
