"""Product image normalisation with Pillow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from ..domain.errors import InvalidImageError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProcessedImage:
    content: bytes
    width: int
    height: int
    content_type: str = "image/webp"
    extension: str = "webp"


class ImageProcessor:
    """Resizes uploads to a fixed width and transcodes them to WEBP."""

    def __init__(self, width: int = 800, quality: int = 80, max_bytes: int = 4_000_000) -> None:
        if width <= 0:
            raise ValueError("width must be positive")
        self._width = width
        self._quality = quality
        self._max_bytes = max_bytes

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def process(self, content: bytes) -> ProcessedImage:
        if not content:
            raise InvalidImageError("No image was sent.")
        if len(content) > self._max_bytes:
            raise InvalidImageError(
                f"Image exceeds the {self._max_bytes} byte limit.",
                size=len(content),
                limit=self._max_bytes,
            )
        try:
            with Image.open(BytesIO(content)) as source:
                source.load()
                img = ImageOps.exif_transpose(source)
                mode = "RGBA" if img.mode in ("RGBA", "LA", "P") else "RGB"
                img = img.convert(mode)
                # proportional height, small images are enlarged
                height = max(1, round(img.height * self._width / img.width))
                resized = img.resize((self._width, height), Image.Resampling.LANCZOS)
                buffer = BytesIO()
                resized.save(buffer, format="WEBP", quality=self._quality)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise InvalidImageError("Unable to process the image.") from exc

        data = buffer.getvalue()
        logger.debug("Transcoded %d byte upload to %dx%d WEBP (%d bytes)", len(content), self._width, height, len(data))
        return ProcessedImage(content=data, width=self._width, height=height)
