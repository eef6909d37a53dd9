"""
Image decoding and upload validation.

Uploaded images arrive either as raw bytes (file selection) or as base64
strings (JSON API bodies); both end up as BGR numpy arrays.
"""

import base64
import binascii
import logging
from typing import Optional

import cv2
import numpy as np

from facerec.exceptions import InvalidUpload

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def validate_upload(
    data: bytes,
    content_type: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> None:
    """
    Check an uploaded file before decoding it.

    Args:
        data: Raw file contents.
        content_type: MIME type reported by the client, if any.
        max_bytes: Size limit.

    Raises:
        InvalidUpload: Not an image, empty, or too large.
    """
    if content_type is not None and not content_type.startswith("image/"):
        raise InvalidUpload("Please select a valid image file")
    if not data:
        raise InvalidUpload("Image file is empty")
    if len(data) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise InvalidUpload(
            f"Image file is too large. Please select a file smaller than {limit_mb:g}MB"
        )


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes (JPEG, PNG, ...) to a BGR array.

    Raises:
        InvalidUpload: If the bytes are not a decodable image.
    """
    np_arr = np.frombuffer(data, np.uint8)
    frame = cv2.imdecode(np_arr, cv2.IMREAD_COLOR) if np_arr.size else None
    if frame is None:
        raise InvalidUpload("Failed to load image")
    return frame


def decode_base64_bytes(b64_string: str) -> bytes:
    """
    Decode a base64 string, optionally wrapped in a data: URL.

    Raises:
        InvalidUpload: If the string is not valid base64.
    """
    if b64_string.startswith("data:"):
        _, _, b64_string = b64_string.partition(",")
    try:
        return base64.b64decode(b64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Failed to decode frame: {e}")
        raise InvalidUpload("Image data is not valid base64") from e


def decode_base64_image(b64_string: str) -> np.ndarray:
    """
    Decode a base64 string (optionally a data: URL) to a BGR array.

    Raises:
        InvalidUpload: If the string is not valid base64 or not an image.
    """
    return decode_image(decode_base64_bytes(b64_string))


def encode_frame_base64(frame: np.ndarray, format: str = "jpeg", quality: int = 85) -> str:
    """
    Encode a BGR frame as a base64 JPEG or PNG string.

    Raises:
        ValueError: If OpenCV fails to encode the frame.
    """
    if format == "jpeg":
        success, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    else:
        success, buffer = cv2.imencode(".png", frame)

    if not success:
        raise ValueError("Failed to encode frame")

    return base64.b64encode(buffer).decode("utf-8")
