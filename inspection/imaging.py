import logging
from io import BytesIO
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from inspection.geometry import GuideFrame, calculate_crop_area

log = logging.getLogger(__name__)

CROP_QUALITY = 60
UPLOAD_QUALITY = 70
UPLOAD_MAX_SIDE = 1600


def _load(image_bytes: bytes) -> Image.Image:
    image = Image.open(BytesIO(image_bytes))
    # Phone cameras store rotation in EXIF; the crop math assumes upright pixels
    image = ImageOps.exif_transpose(image)
    return image.convert("RGB")


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def crop_to_guide(
    image_bytes: bytes,
    screen_width: float,
    screen_height: float,
    guide: GuideFrame,
    quality: int = CROP_QUALITY
) -> bytes:
    """Crop a captured photo to what the inspector saw inside the guide frame.

    Falls back to the untouched photo when the image cannot be read or the
    mapped crop box does not fit inside it.
    """
    try:
        image = _load(image_bytes)
    except (UnidentifiedImageError, OSError) as exc:
        log.warning("Could not decode captured photo, keeping original: %s", exc)
        return image_bytes

    box = calculate_crop_area(image.width, image.height, screen_width, screen_height, guide)
    if not box.is_within(image.width, image.height):
        log.info("Crop box %s outside %dx%d image, keeping original", box, image.width, image.height)
        return image_bytes

    return _encode_jpeg(image.crop(box.as_pillow_box()), quality)


def compress_image(
    image_bytes: bytes,
    quality: int = UPLOAD_QUALITY,
    max_side: Optional[int] = UPLOAD_MAX_SIDE
) -> bytes:
    """Shrink a photo before upload; unreadable input goes out unchanged."""
    try:
        image = _load(image_bytes)
    except (UnidentifiedImageError, OSError) as exc:
        log.warning("Could not decode photo for compression, sending original: %s", exc)
        return image_bytes

    if max_side and max(image.size) > max_side:
        image.thumbnail((max_side, max_side))
    return _encode_jpeg(image, quality)
