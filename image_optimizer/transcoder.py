"""
Image transcoding with Pillow.

Images are decoded, shrunk to fit within a maximum width (never enlarged),
and re-encoded to a web-friendly format at a fixed quality.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Any, Dict, Tuple

from PIL import Image, ImageOps

from .config import Settings


class OutputFormat(str, Enum):
    WEBP = "webp"
    JPEG = "jpeg"
    PNG = "png"

    @property
    def pil_format(self) -> str:
        return self.value.upper()

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"

    @property
    def supports_alpha(self) -> bool:
        return self is not OutputFormat.JPEG


@dataclass(frozen=True)
class TranscodeOptions:
    max_width: int = 1024
    format: OutputFormat = OutputFormat.WEBP
    quality: int = 80

    def __post_init__(self) -> None:
        if self.max_width <= 0:
            raise ValueError("max_width must be positive")
        if not 0 <= self.quality <= 100:
            raise ValueError("quality must be within 0..100")

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranscodeOptions":
        return cls(
            max_width=settings.max_width,
            format=OutputFormat(settings.output_format),
            quality=settings.quality,
        )

    def save_params(self) -> Dict[str, Any]:
        if self.format is OutputFormat.WEBP:
            # method 4 is libwebp's default effort.
            return {"quality": self.quality, "method": 4}
        if self.format is OutputFormat.JPEG:
            return {"quality": self.quality, "optimize": True, "progressive": True}
        return {"optimize": True}


def compute_target_size(width: int, height: int, max_width: int) -> Tuple[int, int]:
    """Fit within `max_width` keeping the aspect ratio; never upscale."""
    if width <= max_width:
        return width, height
    scale = max_width / width
    return max_width, max(1, round(height * scale))


def _normalize_mode(image: Image.Image, output_format: OutputFormat) -> Image.Image:
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if has_alpha:
        image = image.convert("RGBA")
        if output_format.supports_alpha:
            return image
        # Composite onto white for formats without an alpha channel.
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def transcode_image(image_bytes: bytes, options: TranscodeOptions) -> bytes:
    """
    Decode `image_bytes`, fit it within `options.max_width` and re-encode.

    Raises:
        ValueError: when the input cannot be decoded as an image.
    """
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Exception as exc:  # noqa: BLE001
        raise ValueError("Invalid image data") from exc

    # Re-encoding drops EXIF, so bake the orientation into the pixels first.
    image = ImageOps.exif_transpose(image)
    image = _normalize_mode(image, options.format)

    target = compute_target_size(image.width, image.height, options.max_width)
    if target != image.size:
        image = image.resize(target, Image.Resampling.LANCZOS)

    buffer = BytesIO()
    image.save(buffer, format=options.format.pil_format, **options.save_params())
    return buffer.getvalue()
