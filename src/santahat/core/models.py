"""Data models for images, generation requests and their outcomes."""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass, field

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import ErrorKind, MissingCredential, SantaHatError

logger = logging.getLogger(__name__)

# Fixed edit instruction sent alongside every image.  The upstream model was
# tuned against this exact wording, so it must not be reformatted.
HAT_INSTRUCTION = (
    "Edit this image to put a red festive Christmas Santa Claus hat on the person's head. "
    "The tail of the hat must drape down to the right side (viewer's right). "
    "Ensure the entire hat is visible and not cut off by the top or side edges of the image. "
    "The hat should fit naturally, matching lighting and shadows. "
    "Keep the person's face clearly visible and unchanged."
)

RESULT_MIME_TYPE = "image/png"


def _data_url(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_image(data: bytes) -> Image.Image:
    """Decode ``data`` upright, applying any EXIF orientation tag.

    Phone cameras store portraits sideways and rely on the orientation tag;
    re-encoded output carries no tag, so the pixels must be rotated here.
    """
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        return ImageOps.exif_transpose(img)


@dataclass(frozen=True)
class ImageAsset:
    """A decoded image and the bytes it was decoded from.

    Instances are immutable: transforms such as the avatar compositor
    return a new asset instead of modifying this one.
    """

    raw_bytes: bytes = field(repr=False)
    mime_type: str
    width: int
    height: int

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> ImageAsset:
        """Decode ``data`` to learn its displayed dimensions.

        Args:
            data: Encoded image bytes
            mime_type: Declared mime type of ``data``

        Returns:
            New ImageAsset

        Raises:
            ValueError: If the bytes are not a decodable image
        """
        try:
            width, height = decode_image(data).size
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise ValueError(f"Could not decode image: {e}") from e
        return cls(raw_bytes=data, mime_type=mime_type, width=width, height=height)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def to_data_url(self) -> str:
        return _data_url(self.mime_type, self.raw_bytes)

    def open(self) -> Image.Image:
        """Return a fresh, upright PIL image of this asset."""
        return decode_image(self.raw_bytes)


@dataclass(frozen=True)
class GenerationRequest:
    """One attempt's worth of input to the remote model.

    Never persisted; a new request is built for every attempt.
    """

    image: ImageAsset
    api_key: str = field(repr=False)
    instruction: str = HAT_INSTRUCTION

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise MissingCredential()


@dataclass(frozen=True)
class GenerationResult:
    """Image returned by the model."""

    image_bytes: bytes = field(repr=False)
    mime_type: str = RESULT_MIME_TYPE

    def to_data_url(self) -> str:
        return _data_url(self.mime_type, self.image_bytes)


@dataclass(frozen=True)
class GenerationFailure:
    """Why an attempt ended without a result."""

    kind: ErrorKind
    message: str
    retryable: bool = False

    @classmethod
    def from_error(cls, error: SantaHatError) -> GenerationFailure:
        return cls(kind=error.kind, message=error.message, retryable=error.retryable)
