"""Pydantic request and response models for the relay API.

Models
------
GenerateImageRequest
    Payload for ``POST /api/generate-image``.  The prompt is trimmed and
    must not be blank.
GenerateImageResponse
    Success body: ``{"imageBase64", "mimeType", "prompt"}``.
ErrorResponse
    The ``{"error": ...}`` envelope used by every non-2xx JSON response.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from imagerelay.core.errors import ErrorKind, RelayError


class GenerateImageRequest(BaseModel):
    """Request body for ``POST /api/generate-image``.

    Attributes:
        prompt: Text description of the image.  Must be a JSON string; it
            is stripped of surrounding whitespace and must not be empty.
    """

    model_config = ConfigDict(extra="ignore")

    prompt: StrictStr = Field(..., description="Text prompt for the image model.")

    @field_validator("prompt")
    @classmethod
    def _strip_prompt(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be blank")
        return value


class GenerateImageResponse(BaseModel):
    """Success body for ``POST /api/generate-image``.

    Attributes:
        image_base64: Base64-encoded image bytes (``imageBase64`` on the wire).
        mime_type: MIME type of the image (``mimeType`` on the wire).
        prompt: The trimmed prompt the image was generated from.
    """

    model_config = ConfigDict(populate_by_name=True)

    image_base64: str = Field(..., alias="imageBase64")
    mime_type: str = Field(..., alias="mimeType")
    prompt: str


class ErrorResponse(BaseModel):
    """Error envelope shared by every failure response."""

    error: str


def parse_generate_request(raw_body: str) -> GenerateImageRequest:
    """Parse and validate a raw generation request body.

    An empty body is treated as ``{}``.

    Args:
        raw_body: The decoded request body.

    Returns:
        The validated request.

    Raises:
        RelayError: ``INVALID_JSON`` if the body is not JSON,
            ``PROMPT_REQUIRED`` if the JSON is not an object or its prompt is
            missing, not a string, or blank.
    """
    try:
        parsed = json.loads(raw_body or "{}")
    except (json.JSONDecodeError, RecursionError) as exc:
        raise RelayError(ErrorKind.INVALID_JSON, str(exc)) from exc

    if not isinstance(parsed, dict):
        raise RelayError(ErrorKind.PROMPT_REQUIRED, "body is not a JSON object")

    try:
        return GenerateImageRequest.model_validate(parsed)
    except ValidationError as exc:
        raise RelayError(ErrorKind.PROMPT_REQUIRED, str(exc)) from exc
