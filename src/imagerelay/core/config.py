"""Configuration management for the image relay.

Configuration is resolved once at startup in two steps:

1. :func:`load_env_file` copies ``KEY=VALUE`` lines from a local ``.env``
   file into the process environment.
2. :class:`RelayConfig` (Pydantic Settings) reads the environment into an
   immutable settings object.

Precedence rule: **the process environment overrides the env file.**  A
variable that is already set when the relay starts is never replaced by a
value from ``.env``.  Both steps honour this rule, so the API key seen by
:class:`~imagerelay.core.genai_client.ImageGenerator` (which reads the
environment at call time) always agrees with ``RelayConfig``.

Example .env file::

    GOOGLE_GENAI_API_KEY=your-key
    PORT=4000
    HOST=127.0.0.1

Environment variables
---------------------
``GOOGLE_GENAI_API_KEY``
    Required for image generation.  Without it the generation endpoint
    answers 500 but static files are still served.
``HOST`` / ``PORT``
    Bind address, default ``127.0.0.1:4000``.
``IMAGE_MODEL``
    Upstream model identifier, default ``gemini-2.5-flash-image-preview``.
``MAX_BODY_BYTES``
    Request body limit for the generation endpoint, default 1,000,000.
``STATIC_DIR``
    Root directory for static assets, default the packaged demo page.
``LOG_LEVEL``
    Root logging level, default ``INFO``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = Path(".env")
DEFAULT_STATIC_DIR = Path(__file__).resolve().parents[1] / "static"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_MAX_BODY_BYTES = 1_000_000


def load_env_file(path: Path | str = DEFAULT_ENV_FILE) -> bool:
    """Copy ``KEY=VALUE`` lines from *path* into ``os.environ``.

    Blank lines and ``#`` comments are ignored, values are trimmed, and lines
    without ``=`` are skipped.  Variables already present in the environment
    are left untouched.  A missing file is not an error.

    Args:
        path: Location of the env file.

    Returns:
        ``True`` if the file existed and was read, ``False`` otherwise.
    """
    env_path = Path(path)
    if not env_path.is_file():
        logger.debug("No env file at %s", env_path)
        return False

    load_dotenv(env_path, override=False, interpolate=False, encoding="utf-8")
    logger.debug("Loaded env file %s", env_path)
    return True


class RelayConfig(BaseSettings):
    """Immutable startup configuration for the relay.

    Field names map to unprefixed, case-insensitive environment variables
    (``port`` reads ``PORT``).  Values passed as keyword arguments win over
    the environment, which is how the tests build isolated configurations.

    Attributes:
        host: Bind address for the HTTP server.
        port: Bind port for the HTTP server.
        google_genai_api_key: API key for the upstream image model, if set.
        image_model: Upstream model identifier.
        max_body_bytes: Largest accepted generation request body.
        static_dir: Root directory served for every non-API path.
        log_level: Root logging level name.
    """

    model_config = SettingsConfigDict(
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=4000, description="Server port", ge=1, le=65535)
    google_genai_api_key: str | None = Field(
        default=None,
        description="API key for the Google generative-content API",
    )
    image_model: str = Field(
        default=DEFAULT_IMAGE_MODEL,
        description="Upstream image generation model identifier",
    )
    max_body_bytes: int = Field(
        default=DEFAULT_MAX_BODY_BYTES,
        description="Maximum accepted request body size in bytes",
        ge=1,
    )
    static_dir: Path = Field(
        default=DEFAULT_STATIC_DIR,
        description="Root directory for static assets",
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    @property
    def has_api_key(self) -> bool:
        return bool(self.google_genai_api_key)
