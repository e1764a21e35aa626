"""Google GenAI client wrapper for the image relay.

This module provides :class:`ImageGenerator`, the single point of contact
with the upstream generative-content API.  One call to
:meth:`ImageGenerator.generate_image` issues exactly one
``generate_content`` request and returns the first inline image found in the
response.

Key Responsibilities
--------------------
- **API key resolution** - ``GOOGLE_GENAI_API_KEY`` is read from the process
  environment on every call, so a missing key fails fast with
  :attr:`~imagerelay.core.errors.ErrorKind.MISSING_API_KEY` before any
  network traffic.
- **Client caching** - :class:`ClientCache` builds the ``genai.Client``
  lazily and keeps it until the key value changes.
- **Image extraction** - :func:`extract_inline_image` walks candidates and
  their parts in order and picks the first part carrying inline data.

There are no retries, no streaming and no timeout overrides.  Upstream and
transport exceptions propagate to the caller unchanged.

Usage
-----
::

    from imagerelay.core.genai_client import ImageGenerator

    generator = ImageGenerator()
    result = await generator.generate_image("a lighthouse at dusk")
    payload = {"imageBase64": result.image_data, "mimeType": result.mime_type}
"""

from __future__ import annotations

import base64
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from imagerelay.core.config import DEFAULT_IMAGE_MODEL
from imagerelay.core.errors import ErrorKind, RelayError

logger = logging.getLogger(__name__)

API_KEY_ENV = "GOOGLE_GENAI_API_KEY"
DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class GenerationResult:
    """An image returned by the upstream model.

    Attributes:
        image_data: Base64-encoded image bytes.
        mime_type: MIME type reported upstream, ``image/png`` if omitted.
    """

    image_data: str
    mime_type: str = DEFAULT_MIME_TYPE


def _default_client_factory(api_key: str) -> Any:
    """Build a ``google.genai.Client`` bound to *api_key*.

    The SDK is imported here rather than at module level so that importing
    the relay (and its tests) does not pull in the full client stack.
    """
    from google import genai

    return genai.Client(api_key=api_key)


class ClientCache:
    """Holds one upstream client, keyed by the API key it was built with.

    The relay runs on a single event loop, so construction is never raced;
    re-building for the same key would also be harmless.

    Attributes:
        _factory: Callable that turns an API key into a client.
        _api_key: Key the cached client was built with, or ``None``.
        _client: The cached client, or ``None`` before first use.
    """

    def __init__(self, factory: Callable[[str], Any] | None = None) -> None:
        self._factory = factory or _default_client_factory
        self._api_key: str | None = None
        self._client: Any = None

    def get(self, api_key: str) -> Any:
        """Return the cached client, rebuilding it if *api_key* changed."""
        if self._client is None or self._api_key != api_key:
            if self._client is not None:
                logger.info("API key changed, rebuilding GenAI client.")
            self._client = self._factory(api_key)
            self._api_key = api_key
        return self._client

    def clear(self) -> None:
        self._client = None
        self._api_key = None


def _encode_inline_data(data: bytes | str) -> str:
    # The Python SDK decodes inline data to raw bytes; the REST payload is
    # already base64 text.
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    return data


def extract_inline_image(response: Any) -> GenerationResult | None:
    """Return the first inline image in a ``generate_content`` response.

    Candidates are visited in order, and within each candidate its content
    parts in order.  The first part whose ``inline_data`` carries data wins.
    Missing attributes at any level are treated as empty.

    Args:
        response: A ``GenerateContentResponse`` (or any object with the same
            ``candidates[].content.parts[].inline_data`` shape).

    Returns:
        The extracted :class:`GenerationResult`, or ``None`` when no part of
        any candidate holds inline data.
    """
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None)
            if data:
                mime_type = getattr(inline_data, "mime_type", None) or DEFAULT_MIME_TYPE
                return GenerationResult(image_data=_encode_inline_data(data), mime_type=mime_type)
    return None


class ImageGenerator:
    """Turns a text prompt into one image via the upstream model.

    Args:
        model: Upstream model identifier.
        client_cache: Cache used to obtain the client.  Tests pass a cache
            with a fake factory.
        api_key_env: Name of the environment variable holding the API key.
    """

    def __init__(
        self,
        model: str = DEFAULT_IMAGE_MODEL,
        *,
        client_cache: ClientCache | None = None,
        api_key_env: str = API_KEY_ENV,
    ) -> None:
        self.model = model
        self._client_cache = client_cache or ClientCache()
        self._api_key_env = api_key_env

    def _get_client(self) -> Any:
        api_key = os.environ.get(self._api_key_env)
        if not api_key:
            raise RelayError(ErrorKind.MISSING_API_KEY, f"{self._api_key_env} is not set")
        return self._client_cache.get(api_key)

    async def generate_image(self, prompt: str) -> GenerationResult:
        """Generate one image for *prompt*.

        Every call issues a fresh upstream request; results are never reused.

        Args:
            prompt: The trimmed, non-empty prompt text.

        Returns:
            The first inline image of the response.

        Raises:
            RelayError: ``MISSING_API_KEY`` if no key is configured (no
                request is made), ``NO_IMAGE_CONTENT`` if the response holds
                no inline image.
            Exception: Any SDK or transport error, unchanged.
        """
        client = self._get_client()

        response = await client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
        )

        result = extract_inline_image(response)
        if result is None:
            raise RelayError(ErrorKind.NO_IMAGE_CONTENT, f"model {self.model} returned no inline data")
        return result
