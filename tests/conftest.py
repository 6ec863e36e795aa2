"""Shared pytest fixtures for Santa Hat tests."""

from __future__ import annotations

import io
import shutil
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from santahat.core.compositor import AvatarCompositor
from santahat.core.config import SantaHatConfig
from santahat.core.credentials import CredentialResolver, CredentialStore
from santahat.core.generation import GenerationClient
from santahat.core.models import ImageAsset

# ---------------------------------------------------------------------------
# Image helpers.
# ---------------------------------------------------------------------------


def make_image_bytes(
    width: int = 64,
    height: int = 64,
    color: tuple[int, int, int] = (200, 30, 30),
    fmt: str = "PNG",
) -> bytes:
    """Encode a solid-colour image.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        color: RGB fill colour.
        fmt: Pillow format name.

    Returns:
        Encoded image bytes.
    """
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_asset(
    width: int = 64,
    height: int = 64,
    color: tuple[int, int, int] = (200, 30, 30),
    mime_type: str = "image/png",
) -> ImageAsset:
    fmt = "JPEG" if mime_type == "image/jpeg" else "PNG"
    return ImageAsset.from_bytes(make_image_bytes(width, height, color, fmt), mime_type)


def make_oriented_jpeg() -> bytes:
    """Encode a 60x30 JPEG tagged with EXIF orientation 6.

    Stored left half is red and right half blue.  Displayed upright the image
    is 30x60 with red on top and blue below, as a phone portrait would be.
    """
    img = Image.new("RGB", (60, 30), (0, 0, 255))
    img.paste((255, 0, 0), (0, 0, 30, 30))
    exif = Image.Exif()
    exif[0x0112] = 6
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", exif=exif.tobytes(), quality=95)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Gemini SDK fakes.
# ---------------------------------------------------------------------------


def image_part(data: bytes | str, mime_type: str = "image/png") -> SimpleNamespace:
    return SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))


def text_part(text: str) -> SimpleNamespace:
    return SimpleNamespace(text=text, inline_data=None)


def make_response(*candidate_parts: list) -> SimpleNamespace:
    """Build a ``generate_content`` response with one candidate per parts list."""
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts)) for parts in candidate_parts]
    )


def make_client_factory(response=None, error: BaseException | None = None):
    """Create a fake ``genai.Client`` factory.

    Returns:
        Tuple of (factory mock, ``generate_content`` AsyncMock).
    """
    generate_content = AsyncMock(return_value=response, side_effect=error)
    client = MagicMock()
    client.aio.models.generate_content = generate_content
    factory = MagicMock(return_value=client)
    return factory, generate_content


# ---------------------------------------------------------------------------
# Fixtures.
# ---------------------------------------------------------------------------


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
def test_config(temp_dir: Path) -> SantaHatConfig:
    """Create a test configuration whose credential file lives in ``temp_dir``."""
    return SantaHatConfig(
        credential_file=str(temp_dir / "creds" / "credentials.json"),
        _env_file=None,
    )


@pytest.fixture
def credential_store(test_config: SantaHatConfig) -> CredentialStore:
    return CredentialStore(test_config.credential_file)


@pytest.fixture
def resolver(credential_store: CredentialStore) -> CredentialResolver:
    """Resolver with an empty environment so host variables never leak in."""
    return CredentialResolver(credential_store, environ={})


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes(120, 80)


@pytest.fixture
def square_asset() -> ImageAsset:
    return make_asset(100, 100)


@pytest.fixture
def result_png() -> bytes:
    """Bytes the fake model returns as its edited image."""
    return make_image_bytes(32, 32, color=(255, 255, 255))


@pytest.fixture
def fake_factory(result_png: bytes):
    """Client factory whose model always answers with ``result_png``."""
    return make_client_factory(make_response([text_part("Here you go"), image_part(result_png)]))


@pytest.fixture
def generation_client(fake_factory) -> GenerationClient:
    factory, _ = fake_factory
    return GenerationClient(client_factory=factory)


@pytest.fixture
def test_client(credential_store, resolver, generation_client, monkeypatch):
    """FastAPI TestClient with pipeline collaborators replaced by test doubles.

    The lifespan is not run (no ``with`` block); ``app.state`` is populated
    directly instead.
    """
    from fastapi.testclient import TestClient

    from santahat.api import main as api_main

    api_main.app.state.credential_store = credential_store
    api_main.app.state.resolver = resolver
    api_main.app.state.compositor = AvatarCompositor(background_blur=4, shadow_blur=2)
    api_main.app.state.generation_client = generation_client

    return TestClient(api_main.app)
