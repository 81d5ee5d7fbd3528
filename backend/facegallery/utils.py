"""
Utility functions for the face gallery service.
"""
import base64
import binascii
import io

import cv2
import numpy as np
from PIL import Image

from .exceptions import InvalidImageError, InvalidRequestError

# Pillow format name -> file extension used when storing raw samples
IMAGE_EXTENSIONS = {
    "JPEG": ".jpg",
    "MPO": ".jpg",
    "PNG": ".png",
    "WEBP": ".webp",
}


def decode_base64(data: str) -> bytes:
    """Decode a standard base64 payload, rejecting anything malformed."""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError(f"Failed to decode base64: {str(e)}")


def image_extension(data: bytes) -> str:
    """Return the file extension for supported image bytes.

    Raises InvalidImageError when Pillow cannot identify the image or the
    format is not one the store accepts.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except Exception as e:
        raise InvalidImageError(f"Unsupported or corrupt image: {str(e)}")

    ext = IMAGE_EXTENSIONS.get(fmt)
    if ext is None:
        raise InvalidImageError(f"Unsupported image format: {fmt}")
    return ext


def bgr_from_upload(data: bytes) -> np.ndarray:
    """Convert raw bytes → OpenCV-BGR ndarray, with PIL fallback for broader format support."""
    if not data:
        raise InvalidImageError("Empty image payload")

    # First try OpenCV's decoder (fast for JPG, PNG)
    arr = np.frombuffer(data, np.uint8)
    try:
        bgr = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    except cv2.error:
        bgr = None

    if bgr is None:
        try:
            # Fall back to PIL which supports more formats (like WebP)
            img = Image.open(io.BytesIO(data)).convert("RGB")
            bgr = cv2.cvtColor(np.array(img), cv2.COLOR_RGB2BGR)
        except Exception as e:
            raise InvalidImageError(f"Unsupported or corrupt image: {str(e)}")

    if bgr is None or bgr.size == 0:
        raise InvalidImageError("Failed to decode image (empty or corrupt)")

    if len(bgr.shape) == 2:  # Grayscale
        bgr = cv2.cvtColor(bgr, cv2.COLOR_GRAY2BGR)
    elif bgr.shape[2] == 4:  # RGBA
        bgr = cv2.cvtColor(bgr, cv2.COLOR_RGBA2BGR)

    if len(bgr.shape) != 3 or bgr.shape[2] != 3:
        raise InvalidImageError(f"Invalid image format: {bgr.shape}")

    return bgr


def as_descriptor(vector) -> np.ndarray:
    """Freeze an engine embedding into a read-only float32 vector."""
    desc = np.array(vector, dtype=np.float32).reshape(-1)
    desc.setflags(write=False)
    return desc


def l2_normalize(mat: np.ndarray) -> np.ndarray:
    mat = np.asarray(mat, dtype=np.float32)
    norms = np.linalg.norm(mat, axis=-1, keepdims=True)
    return mat / np.maximum(norms, 1e-12)

