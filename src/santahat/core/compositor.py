"""Avatar compositor: pad an image onto a blurred square backdrop.

Circular avatar crops cut off whatever sits near the corners of a photo, and a
hat added on top of a tightly framed head is usually the first thing to go.
The compositor "zooms out" the picture before it is sent to the model:

1. A square canvas is created whose side is ``floor(max(w, h) * padding_factor)``.
2. The canvas is filled with a cover-scaled, heavily blurred and slightly
   brightened copy of the image.
3. The original image is drawn unscaled and upright (EXIF orientation
   applied) in the centre, on top of a soft drop
   shadow that separates it from the backdrop.

Rendering uses Pillow (``ImageFilter.GaussianBlur``, ``ImageEnhance``,
``Image.alpha_composite``).  Blur and shadow sizes are visual parameters,
not exact filter kernels.

Failures raise :class:`~santahat.core.errors.CompositionError`.  Callers in
the generation pipeline use :func:`prepare_for_avatar`, which falls back to
the untouched input image instead of aborting the attempt.

Usage Example
-------------
    from santahat.core.compositor import AvatarCompositor

    compositor = AvatarCompositor()
    padded = compositor.composite(asset)
    print(padded.size)  # (floor(max_dim * 1.6),) * 2
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass

from PIL import Image, ImageEnhance, ImageFilter, UnidentifiedImageError

from .errors import CompositionError
from .models import ImageAsset

logger = logging.getLogger(__name__)

DEFAULT_PADDING_FACTOR = 1.6

# mime type -> Pillow format for encodings the compositor can write.
# Anything else is written as PNG, like a canvas falling back to its default.
_WRITABLE_FORMATS: dict[str, str] = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/webp": "WEBP",
}


def padded_size(width: int, height: int, padding_factor: float = DEFAULT_PADDING_FACTOR) -> int:
    """Side of the square canvas for an image of ``width`` x ``height``."""
    return math.floor(max(width, height) * padding_factor)


@dataclass(frozen=True)
class CompositeLayout:
    """Geometry of one composite, in canvas pixels.

    Attributes:
        canvas_size: Side of the square output canvas
        background_size: Cover-scaled size of the backdrop before cropping
        background_offset: Top-left of the backdrop on the canvas (<= 0)
        foreground_offset: Top-left of the unscaled original on the canvas
    """

    canvas_size: int
    background_size: tuple[int, int]
    background_offset: tuple[int, int]
    foreground_offset: tuple[int, int]

    @classmethod
    def for_image(
        cls, width: int, height: int, padding_factor: float = DEFAULT_PADDING_FACTOR
    ) -> CompositeLayout:
        if width <= 0 or height <= 0:
            raise CompositionError(f"Cannot composite an image of size {width}x{height}")

        size = padded_size(width, height, padding_factor)

        # Cover fit: the smaller relative side fills the canvas, overflow is
        # cropped equally on both sides.
        scale = max(size / width, size / height)
        bg_w = max(size, round(width * scale))
        bg_h = max(size, round(height * scale))

        return cls(
            canvas_size=size,
            background_size=(bg_w, bg_h),
            background_offset=((size - bg_w) // 2, (size - bg_h) // 2),
            foreground_offset=((size - width) // 2, (size - height) // 2),
        )


class AvatarCompositor:
    """Renders padded, blurred-backdrop squares for circular avatars.

    Attributes
    ----------
    padding_factor : float
        Canvas side relative to the longest image side (must be > 1)
    background_blur : float
        Gaussian blur radius of the backdrop
    brightness : float
        Brightness multiplier of the backdrop
    shadow_blur : float
        Gaussian blur radius of the drop shadow
    shadow_offset : int
        Vertical shadow offset, positive is down
    shadow_opacity : float
        Shadow opacity between 0 and 1
    """

    def __init__(
        self,
        padding_factor: float = DEFAULT_PADDING_FACTOR,
        background_blur: float = 40.0,
        brightness: float = 1.1,
        shadow_blur: float = 25.0,
        shadow_offset: int = 10,
        shadow_opacity: float = 0.25,
    ) -> None:
        if padding_factor <= 1:
            raise ValueError(f"padding_factor must be greater than 1, got {padding_factor}")
        if not 0.0 <= shadow_opacity <= 1.0:
            raise ValueError(f"shadow_opacity must be 0-1, got {shadow_opacity}")

        self.padding_factor = padding_factor
        self.background_blur = background_blur
        self.brightness = brightness
        self.shadow_blur = shadow_blur
        self.shadow_offset = shadow_offset
        self.shadow_opacity = shadow_opacity

    @classmethod
    def from_config(cls, config) -> AvatarCompositor:
        """Build a compositor from a SantaHatConfig."""
        return cls(
            padding_factor=config.padding_factor,
            background_blur=config.background_blur,
            brightness=config.background_brightness,
            shadow_blur=config.shadow_blur,
            shadow_offset=config.shadow_offset,
            shadow_opacity=config.shadow_opacity,
        )

    def composite(self, image: ImageAsset, output_mime_type: str | None = None) -> ImageAsset:
        """Pad ``image`` onto a blurred square backdrop.

        Args:
            image: Source asset (left untouched)
            output_mime_type: Encoding of the result; PNG when omitted or
                when the type cannot be written

        Returns:
            New ImageAsset of size ``canvas_size x canvas_size``

        Raises:
            CompositionError: If the image cannot be decoded or rendered
        """
        try:
            source = image.open().convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise CompositionError(f"Failed to load image for processing: {e}") from e

        layout = CompositeLayout.for_image(source.width, source.height, self.padding_factor)
        mime_type, fmt = self._output_format(output_mime_type)

        try:
            canvas = self._render(source, layout)
            data = self._encode(canvas, fmt)
        except (ValueError, OSError, MemoryError) as e:
            raise CompositionError(f"Failed to render avatar canvas: {e}") from e

        logger.debug(
            f"Composited {source.width}x{source.height} -> "
            f"{layout.canvas_size}x{layout.canvas_size} ({mime_type})"
        )
        return ImageAsset(
            raw_bytes=data,
            mime_type=mime_type,
            width=layout.canvas_size,
            height=layout.canvas_size,
        )

    def _render(self, source: Image.Image, layout: CompositeLayout) -> Image.Image:
        size = layout.canvas_size
        canvas = Image.new("RGBA", (size, size), (0, 0, 0, 255))

        # Backdrop: cover-scaled, blurred, brightened.
        background = source.resize(layout.background_size, Image.Resampling.LANCZOS)
        if self.background_blur > 0:
            background = background.filter(ImageFilter.GaussianBlur(self.background_blur))
        if self.brightness != 1.0:
            background = ImageEnhance.Brightness(background).enhance(self.brightness)
        canvas.alpha_composite(_opaque(background), dest=(0, 0), source=_crop_box(layout))

        # Drop shadow follows the subject's own alpha, like a canvas shadow.
        fg_x, fg_y = layout.foreground_offset
        if self.shadow_opacity > 0:
            shadow_alpha = source.getchannel("A").point(
                lambda a: round(a * self.shadow_opacity)
            )
            shadow = Image.new("RGBA", (size, size), (0, 0, 0, 0))
            shadow.paste((0, 0, 0, 255), (fg_x, fg_y + self.shadow_offset), shadow_alpha)
            if self.shadow_blur > 0:
                shadow = shadow.filter(ImageFilter.GaussianBlur(self.shadow_blur))
            canvas.alpha_composite(shadow)

        canvas.alpha_composite(source, dest=(fg_x, fg_y))
        return canvas

    @staticmethod
    def _output_format(output_mime_type: str | None) -> tuple[str, str]:
        mime = (output_mime_type or "").lower()
        if mime in _WRITABLE_FORMATS:
            if mime == "image/jpg":
                mime = "image/jpeg"
            return mime, _WRITABLE_FORMATS[mime]
        return "image/png", "PNG"

    @staticmethod
    def _encode(canvas: Image.Image, fmt: str) -> bytes:
        buffer = io.BytesIO()
        if fmt == "JPEG":
            canvas.convert("RGB").save(buffer, format="JPEG", quality=95)
        elif fmt == "WEBP":
            canvas.save(buffer, format="WEBP", lossless=True)
        else:
            canvas.save(buffer, format=fmt)
        return buffer.getvalue()


def _crop_box(layout: CompositeLayout) -> tuple[int, int, int, int]:
    """Region of the scaled backdrop that lands on the canvas."""
    left = -layout.background_offset[0]
    top = -layout.background_offset[1]
    return (left, top, left + layout.canvas_size, top + layout.canvas_size)


def _opaque(image: Image.Image) -> Image.Image:
    """Flatten transparency out of the backdrop so the canvas stays opaque."""
    flattened = Image.new("RGBA", image.size, (0, 0, 0, 255))
    flattened.alpha_composite(image)
    return flattened


def prepare_for_avatar(
    image: ImageAsset,
    compositor: AvatarCompositor | None = None,
    output_mime_type: str | None = None,
) -> ImageAsset:
    """Composite ``image`` for avatar use, falling back to the original.

    A composition failure never aborts generation: the unmodified image is
    returned instead and a warning is logged.

    Args:
        image: Source asset
        compositor: Compositor to use (default settings if omitted)
        output_mime_type: Encoding of the composite (default: the source type)

    Returns:
        The composited asset, or ``image`` itself if compositing failed
    """
    compositor = compositor or AvatarCompositor()
    try:
        return compositor.composite(image, output_mime_type or image.mime_type)
    except CompositionError as e:
        logger.warning(f"Avatar optimization failed, falling back to original image: {e}")
        return image
