"""Utility functions for image processing"""
from .image import (
    ImageProcessingError,
    decode_base64_image,
    decode_image_bytes,
    encode_image_base64
)

__all__ = [
    'ImageProcessingError',
    'decode_base64_image',
    'decode_image_bytes',
    'encode_image_base64'
]
