"""
Size-bounding of uploaded photos before they are sent to the provider.
Best-effort: a photo that cannot be decoded is passed through as-is.
"""
import io
import logging

from PIL import Image, UnidentifiedImageError

from idphoto.services.image_generation.base import EncodedImage

logger = logging.getLogger(__name__)

RESIZED_MEDIA_TYPE = "image/jpeg"
DEFAULT_JPEG_QUALITY = 90


def scaled_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Size with the longer edge equal to max_dimension, aspect ratio kept."""
    scale = max_dimension / max(width, height)
    return (
        max(1, round(width * scale)),
        max(1, round(height * scale)),
    )


def prepare_image(
    image: EncodedImage,
    max_dimension: int,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> EncodedImage:
    """
    Scale `image` down so neither edge exceeds max_dimension and re-encode as JPEG.
    Images already within bounds come back unchanged (same data and media type).
    """
    if max_dimension < 1:
        raise ValueError("max_dimension must be positive")

    try:
        with Image.open(io.BytesIO(image.decode())) as img:
            width, height = img.size
            if width <= max_dimension and height <= max_dimension:
                return image

            new_size = scaled_size(width, height, max_dimension)
            resized = img.convert("RGB").resize(new_size, Image.Resampling.LANCZOS)
            buf = io.BytesIO()
            resized.save(buf, "JPEG", quality=quality)
    except (ValueError, OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
        logger.warning(
            "image_preprocess_failed",
            extra={"media_type": image.media_type, "error": str(e)},
        )
        return image

    logger.info(
        "image_preprocessed",
        extra={
            "original_width": width,
            "original_height": height,
            "width": new_size[0],
            "height": new_size[1],
        },
    )
    return EncodedImage.from_bytes(buf.getvalue(), RESIZED_MEDIA_TYPE)
