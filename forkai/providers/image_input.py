"""Uploaded photo preparation for the vision stage.

Turns the caller's image field into an InlineMedia attachment:

1. decode_image_data(): raw base64 or data: URL -> bytes
2. detect_mime_type(): real format from magic bytes (filetype), not the declared type
3. validate_image_size(): MAX_IMAGE_SIZE_MB limit
4. compress_image(): optional JPEG re-encode with Pillow for large photos

Any problem with the caller's data raises InvalidRequestError (a 4xx);
compression failures are not the caller's fault and fall back to the original bytes.
"""

import base64
import binascii
from io import BytesIO
from typing import Optional

import filetype
from PIL import Image

from forkai.models.models import InlineMedia
from forkai.utils.config import config
from forkai.utils.errors import InvalidRequestError, safe_execute_sync
from forkai.utils.logger import logger

SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")


def decode_image_data(image: str) -> tuple[bytes, Optional[str]]:
    """Decode a base64 image or data: URL.

    Args:
        image: "data:image/jpeg;base64,/9j/..." or plain base64 "iVBORw0KGgo...".

    Returns:
        Tuple of (image bytes, mime type declared in the data URL or None).

    Raises:
        InvalidRequestError: If the payload is not valid base64.
    """
    declared_mime = None
    encoded = image.strip()
    if encoded.startswith("data:"):
        header, _, encoded = encoded.partition(",")
        declared_mime = header[len("data:"):].split(";", 1)[0] or None

    try:
        return base64.b64decode(encoded, validate=True), declared_mime
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError("Image must be base64-encoded data") from e


def detect_mime_type(image_bytes: bytes) -> Optional[str]:
    """Detect image format from magic bytes. Returns a supported MIME type or None."""
    kind = filetype.guess(image_bytes)
    if kind is None or kind.mime not in SUPPORTED_MIME_TYPES:
        logger.warning(f"Unsupported image format: {kind.mime if kind else 'unknown'}")
        return None
    return kind.mime


def validate_image_size(image_bytes: bytes) -> bool:
    """Validate image size against MAX_IMAGE_SIZE_MB."""
    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > config.MAX_IMAGE_SIZE_MB:
        logger.warning(f"Image size {size_mb:.2f}MB exceeds limit of {config.MAX_IMAGE_SIZE_MB}MB")
        return False
    return True


def compress_image(image_bytes: bytes, max_width: int = 1024) -> bytes:
    """Re-encode a large photo as JPEG (quality 85), resizing to max_width.

    Images below COMPRESS_IMG_THRESHOLD_KB are returned unchanged, and so is the
    original when Pillow cannot decode the data.
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < config.COMPRESS_IMG_THRESHOLD_KB:
        logger.debug(f"Image size {size_kb:.1f}KB below compression threshold, skipping compression")
        return image_bytes

    def _compress():
        img = Image.open(BytesIO(image_bytes))

        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            rgb_img = Image.new("RGB", img.size, (255, 255, 255))
            rgb_img.paste(img, mask=img.split()[-1])
            img = rgb_img
        elif img.mode != "RGB":
            img = img.convert("RGB")

        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed = output.getvalue()
        logger.debug(f"Image compressed: {size_kb:.1f}KB → {len(compressed) / 1024:.1f}KB")
        return compressed

    return safe_execute_sync(_compress, "Image compression", log_level="warning", default_return=image_bytes)


def prepare_image(image: str, mime_type: Optional[str] = None) -> InlineMedia:
    """Decode, validate and optionally compress an uploaded photo.

    Args:
        image: Base64 string or data: URL from the caller.
        mime_type: Type declared by the caller; only used in log output when it
            disagrees with the detected format.

    Returns:
        InlineMedia ready to attach to a vision turn.

    Raises:
        InvalidRequestError: Undecodable, unsupported or oversized image.
    """
    image_bytes, declared = decode_image_data(image)
    if not image_bytes:
        raise InvalidRequestError("Image is empty")

    detected = detect_mime_type(image_bytes)
    if detected is None:
        raise InvalidRequestError("Invalid image format. Only JPEG, PNG and WEBP are supported.")
    claimed = mime_type or declared
    if claimed and claimed != detected:
        logger.debug(f"Declared image type {claimed} differs from detected {detected}, using {detected}")

    if not validate_image_size(image_bytes):
        raise InvalidRequestError(f"Image too large. Maximum size is {config.MAX_IMAGE_SIZE_MB}MB")

    if config.COMPRESS_IMG:
        compressed = compress_image(image_bytes)
        if compressed is not image_bytes:
            return InlineMedia(mime_type="image/jpeg", data=compressed)

    return InlineMedia(mime_type=detected, data=image_bytes)
