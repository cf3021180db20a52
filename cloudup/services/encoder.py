"""
Encoder Service - Single Responsibility: turn decoded images into JPEG bytes.

Uses Pillow.
"""
import io
import logging

from PIL import Image

from ..errors import ImageEncodeError

logger = logging.getLogger(__name__)

# Modes JPEG can store directly
_JPEG_MODES = {"RGB", "L", "CMYK"}


def encode_jpeg(image: Image.Image, quality: int = 90) -> bytes:
    """
    Encode a decoded image as JPEG.

    Images with alpha or a palette are flattened to RGB first.

    Raises:
        ImageEncodeError: if Pillow cannot encode the image
    """
    try:
        if image.mode not in _JPEG_MODES:
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError) as exc:
        raise ImageEncodeError(f"JPEG encoding failed: {exc}") from exc

    data = buffer.getvalue()
    if not data:
        raise ImageEncodeError("JPEG encoding produced no data")
    logger.debug(f"Encoded {image.size[0]}x{image.size[1]} image to {len(data)} bytes (quality={quality})")
    return data
