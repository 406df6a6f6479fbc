"""Image decoding utilities.

This module turns images received over the API (base64 strings, optionally
data URLs) into OpenCV BGR arrays, and back.
"""

import base64
import binascii

import cv2
import numpy as np


class ImageProcessingError(ValueError):
    """Base exception for image processing errors."""
    pass


class ImageDecodingError(ImageProcessingError):
    """Exception raised when base64 decoding fails."""
    pass


class ImageFormatError(ImageProcessingError):
    """Exception raised when decoded bytes are not a readable image."""
    pass


def strip_data_url(base64_string: str) -> str:
    """Remove a ``data:image/...;base64,`` prefix if present."""
    if ';base64,' in base64_string:
        return base64_string.split(';base64,', 1)[1]
    if base64_string.startswith('data:') and ',' in base64_string:
        return base64_string.split(',', 1)[1]
    return base64_string


def decode_image_bytes(image_bytes: bytes) -> np.ndarray:
    """Decode encoded image bytes (JPEG, PNG, ...) to a BGR array.

    Raises:
        ImageFormatError: If the bytes cannot be read as an image.
    """
    if not image_bytes:
        raise ImageFormatError("Image data is empty")
    image = cv2.imdecode(np.frombuffer(image_bytes, np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ImageFormatError("Failed to decode image data")
    return image


def decode_base64_image(base64_string: str) -> np.ndarray:
    """Decode base64 string to OpenCV image.

    Args:
        base64_string: Base64 encoded image string, optionally with data URL prefix.
            Example formats:
            - "data:image/jpeg;base64,/9j/4AAQSkZ..."
            - "/9j/4AAQSkZ..." (without prefix)

    Returns:
        Decoded image as numpy array in BGR format.

    Raises:
        ImageDecodingError: If base64 decoding fails.
        ImageFormatError: If decoded data cannot be read as an image.
    """
    if not isinstance(base64_string, str) or not base64_string.strip():
        raise ImageDecodingError("Image string is empty")

    try:
        image_bytes = base64.b64decode(strip_data_url(base64_string.strip()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodingError(f"Failed to decode base64 string: {str(e)}")

    return decode_image_bytes(image_bytes)


def encode_image_base64(image: np.ndarray, ext: str = ".png") -> str:
    """Encode a BGR array as a base64 string without data URL prefix."""
    ok, buffer = cv2.imencode(ext, image)
    if not ok:
        raise ImageFormatError(f"Failed to encode image as {ext}")
    return base64.b64encode(buffer.tobytes()).decode('ascii')
