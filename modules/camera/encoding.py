"""JPEG encoding helpers for captured frames."""

import io
from typing import Tuple
from PIL import Image

from core.interfaces.camera import CaptureFailed

# 0.9 of maximum quality
DEFAULT_JPEG_QUALITY = 90


def encode_jpeg(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Encode a frame as JPEG.

    Args:
        image: Frame to encode
        quality: JPEG quality 1-95

    Returns:
        Encoded bytes (never empty)

    Raises:
        CaptureFailed: If the frame cannot be encoded
    """
    if image.width <= 0 or image.height <= 0:
        raise CaptureFailed(f"Cannot encode empty frame {image.width}x{image.height}")

    if image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    try:
        image.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError) as e:
        raise CaptureFailed(f"JPEG encoding failed: {e}")

    data = buffer.getvalue()
    if not data:
        raise CaptureFailed("JPEG encoder produced no data")
    return data


def image_dimensions(data: bytes) -> Tuple[int, int]:
    """Read (width, height) from encoded image bytes.

    Raises:
        OSError: If the data is not a decodable image
    """
    with Image.open(io.BytesIO(data)) as image:
        return image.width, image.height
