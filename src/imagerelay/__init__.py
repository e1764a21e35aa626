"""Image Relay - a thin HTTP front for Gemini image generation."""

__version__ = "0.1.0"

from imagerelay.core.config import RelayConfig, load_env_file
from imagerelay.core.genai_client import GenerationResult, ImageGenerator

__all__ = [
    "GenerationResult",
    "ImageGenerator",
    "RelayConfig",
    "load_env_file",
]
