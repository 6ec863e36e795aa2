"""Unit tests for image and generation data models."""

import base64
import dataclasses

import pytest

from conftest import make_image_bytes, make_oriented_jpeg
from santahat.core.errors import ErrorKind, InvalidCredential, MissingCredential, NoImageReturned
from santahat.core.models import (
    HAT_INSTRUCTION,
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
    ImageAsset,
)


class TestImageAsset:
    """Tests for ImageAsset."""

    def test_from_bytes_reads_dimensions(self):
        asset = ImageAsset.from_bytes(make_image_bytes(120, 80), "image/png")
        assert asset.width == 120
        assert asset.height == 80
        assert asset.size == (120, 80)

    def test_from_bytes_keeps_raw_bytes(self):
        data = make_image_bytes(10, 10)
        assert ImageAsset.from_bytes(data, "image/png").raw_bytes == data

    def test_from_bytes_rejects_garbage(self):
        with pytest.raises(ValueError, match="Could not decode image"):
            ImageAsset.from_bytes(b"not an image", "image/png")

    def test_is_immutable(self, square_asset):
        with pytest.raises(dataclasses.FrozenInstanceError):
            square_asset.width = 1

    def test_to_data_url(self, square_asset):
        assert square_asset.to_data_url().startswith("data:image/png;base64,")

    def test_open_returns_loaded_image(self, square_asset):
        assert square_asset.open().size == (100, 100)

    def test_from_bytes_reports_displayed_size(self):
        """A sideways-stored portrait (EXIF orientation 6) is 30 wide, 60 tall."""
        asset = ImageAsset.from_bytes(make_oriented_jpeg(), "image/jpeg")
        assert asset.size == (30, 60)

    def test_open_applies_orientation(self):
        img = ImageAsset.from_bytes(make_oriented_jpeg(), "image/jpeg").open().convert("RGB")
        assert img.size == (30, 60)
        top_r, _, top_b = img.getpixel((15, 10))
        bottom_r, _, bottom_b = img.getpixel((15, 50))
        assert top_r > top_b
        assert bottom_b > bottom_r

    def test_repr_omits_bytes(self, square_asset):
        assert "raw_bytes" not in repr(square_asset)


class TestGenerationRequest:
    """Tests for GenerationRequest."""

    def test_defaults_to_hat_instruction(self, square_asset):
        request = GenerationRequest(image=square_asset, api_key="key")
        assert request.instruction == HAT_INSTRUCTION

    @pytest.mark.parametrize("key", ["", "   "])
    def test_requires_non_empty_key(self, square_asset, key):
        with pytest.raises(MissingCredential):
            GenerationRequest(image=square_asset, api_key=key)

    def test_repr_hides_key(self, square_asset):
        assert "secret-key" not in repr(GenerationRequest(image=square_asset, api_key="secret-key"))


class TestGenerationResult:
    """Tests for GenerationResult."""

    def test_default_mime_is_png(self):
        assert GenerationResult(image_bytes=b"x").mime_type == "image/png"

    def test_data_url(self):
        url = GenerationResult(image_bytes=b"abc").to_data_url()
        assert url == "data:image/png;base64," + base64.b64encode(b"abc").decode()


class TestGenerationFailure:
    """Tests for GenerationFailure.from_error."""

    def test_from_retryable_error(self):
        failure = GenerationFailure.from_error(NoImageReturned())
        assert failure.kind is ErrorKind.NO_IMAGE_RETURNED
        assert failure.retryable
        assert failure.message

    def test_from_credential_error(self):
        failure = GenerationFailure.from_error(InvalidCredential("custom"))
        assert failure.kind is ErrorKind.INVALID_CREDENTIAL
        assert failure.message == "custom"
        assert not failure.retryable
