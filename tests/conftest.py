"""Shared pytest fixtures for Image Relay tests."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from imagerelay.api.main import create_app
from imagerelay.core.config import RelayConfig
from imagerelay.core.genai_client import API_KEY_ENV, ClientCache, ImageGenerator

TEST_API_KEY = "test-api-key"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"


def make_part(data=None, mime_type=None, text=None) -> SimpleNamespace:
    """Build a response part shaped like ``google.genai.types.Part``."""
    inline_data = None
    if data is not None:
        inline_data = SimpleNamespace(data=data, mime_type=mime_type)
    return SimpleNamespace(text=text, inline_data=inline_data)


def make_response(*candidate_parts: list) -> SimpleNamespace:
    """Build a ``GenerateContentResponse``-shaped object.

    Each positional argument is the list of parts of one candidate.
    """
    candidates = [
        SimpleNamespace(content=SimpleNamespace(parts=parts)) for parts in candidate_parts
    ]
    return SimpleNamespace(candidates=candidates)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def static_root(temp_dir: Path) -> Path:
    """Create a static root with a few assets and a secret file beside it.

    Layout::

        temp_dir/
            secret.txt          <- outside the root, must never be served
            public/
                index.html
                css/styles.css
                js/app.js
                img/logo.png
                data.bin
                empty-dir/
    """
    (temp_dir / "secret.txt").write_text("top secret")

    root = temp_dir / "public"
    (root / "css").mkdir(parents=True)
    (root / "js").mkdir()
    (root / "img").mkdir()
    (root / "empty-dir").mkdir()

    (root / "index.html").write_text("<!doctype html><title>Image Lab</title>")
    (root / "css" / "styles.css").write_text("body { color: red; }")
    (root / "js" / "app.js").write_text("console.log('hi');")
    (root / "img" / "logo.png").write_bytes(PNG_BYTES)
    (root / "data.bin").write_bytes(b"\x00\x01\x02")
    return root


@pytest.fixture
def api_key(monkeypatch) -> str:
    """Set the upstream API key in the environment."""
    monkeypatch.setenv(API_KEY_ENV, TEST_API_KEY)
    return TEST_API_KEY


@pytest.fixture
def no_api_key(monkeypatch) -> None:
    """Make sure the upstream API key is not set."""
    monkeypatch.delenv(API_KEY_ENV, raising=False)


@pytest.fixture
def genai_client() -> MagicMock:
    """A fake ``genai.Client`` whose async ``generate_content`` returns one PNG."""
    client = MagicMock(name="genai.Client")
    client.aio.models.generate_content = AsyncMock(
        return_value=make_response([make_part(data=PNG_BYTES, mime_type="image/png")])
    )
    return client


@pytest.fixture
def client_factory(genai_client: MagicMock) -> MagicMock:
    """Factory handed to :class:`ClientCache`; records every client build."""
    return MagicMock(name="client_factory", return_value=genai_client)


@pytest.fixture
def image_generator(client_factory: MagicMock) -> ImageGenerator:
    """An :class:`ImageGenerator` wired to the fake client."""
    return ImageGenerator(client_cache=ClientCache(factory=client_factory))


@pytest.fixture
def test_config(static_root: Path) -> RelayConfig:
    """Create a test configuration that ignores any local ``.env`` file."""
    return RelayConfig(
        _env_file=None,
        static_dir=static_root,
        max_body_bytes=1024,
    )


@pytest.fixture
def test_client(test_config: RelayConfig, image_generator: ImageGenerator) -> Generator[TestClient, None, None]:
    """A TestClient around a relay app using the fake upstream client."""
    app = create_app(test_config, image_generator)
    with TestClient(app) as client:
        yield client
