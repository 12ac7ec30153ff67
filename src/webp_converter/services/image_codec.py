"""Image decoding and WebP encoding with Pillow."""

import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Formats are sniffed from content, never from the key's extension.
# Pillow reports JPEGs carrying an MPF segment (most camera files) as MPO.
SUPPORTED_FORMATS = {"JPEG", "MPO", "PNG", "GIF"}

DEFAULT_QUALITY = 65


def decode_image(data: bytes) -> Image.Image | None:
    """
    Decode JPEG, PNG or GIF bytes into an in-memory image.

    Only the first frame of an animated GIF or a multi-picture JPEG is kept.

    Args:
        data: Raw file content.

    Returns:
        Decoded image, or None if the content is corrupt or not a supported format.
    """
    try:
        image = Image.open(io.BytesIO(data))
        if image.format not in SUPPORTED_FORMATS:
            logger.warning("Unsupported image format: %s", image.format)
            return None
        image.load()
        return image
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("Failed to decode image: %s", e)
        return None


def _webp_compatible(image: Image.Image) -> Image.Image:
    """Convert palette, greyscale and CMYK images to RGB or RGBA."""
    if image.mode in ("RGB", "RGBA"):
        return image

    has_alpha = image.mode in ("LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    return image.convert("RGBA" if has_alpha else "RGB")


def encode_webp(
    image: Image.Image,
    quality: int = DEFAULT_QUALITY,
    lossless: bool = False,
) -> bytes | None:
    """
    Encode an image as WebP.

    Args:
        image: Decoded image.
        quality: Compression quality, 0-100.
        lossless: Use lossless compression.

    Returns:
        WebP bytes, or None if encoding failed.
    """
    buffer = io.BytesIO()
    try:
        _webp_compatible(image).save(
            buffer,
            format="WEBP",
            quality=quality,
            lossless=lossless,
        )
    except (OSError, ValueError) as e:
        logger.warning("Failed to encode WebP: %s", e)
        return None
    return buffer.getvalue()
