"""Core building blocks of the image relay.

- **config**: startup configuration (Pydantic Settings) and ``.env`` loading
- **errors**: the closed :class:`ErrorKind` set and its status/message table
- **genai_client**: the cached Google GenAI client and image extraction
"""

from imagerelay.core.config import RelayConfig, load_env_file
from imagerelay.core.errors import ERROR_TABLE, ErrorKind, RelayError
from imagerelay.core.genai_client import ClientCache, GenerationResult, ImageGenerator

__all__ = [
    "ClientCache",
    "ERROR_TABLE",
    "ErrorKind",
    "GenerationResult",
    "ImageGenerator",
    "RelayConfig",
    "RelayError",
    "load_env_file",
]
