"""Codec adapter: decode encoded image bytes into 16-bit RGBA samples.

Every decoded image has the same layout regardless of the source
format: a ``(height, width, 4)`` ``uint16`` array where each channel
spans the full ``0..65535`` range. 8-bit images are widened by 257 so
that 255 maps exactly onto 65535.

Pillow reads 16-bit colour PNGs as 8-bit RGB/RGBA, so any PNG whose
header declares 16 bits per sample is decoded with OpenCV instead,
which keeps every sample at full precision.
"""

import io

import cv2
import numpy as np
from PIL import Image

MAX_CHANNEL_VALUE = 0xFFFF

# Pillow modes that carry more than 8 bits per sample (single channel)
_WIDE_GRAY_MODES = {"I;16", "I;16L", "I;16B", "I;16N", "I"}

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
# Signature (8) + chunk length (4) + "IHDR" (4) + width (4) + height (4)
_PNG_BIT_DEPTH_OFFSET = 24


class DecodeError(ValueError):
    """Raised when encoded bytes cannot be decoded into an image."""


def png_bit_depth(encoded: bytes | memoryview) -> int | None:
    """Return the bit depth declared in a PNG header, or None if not a PNG."""
    header = bytes(encoded[: _PNG_BIT_DEPTH_OFFSET + 1])
    if len(header) <= _PNG_BIT_DEPTH_OFFSET or not header.startswith(PNG_SIGNATURE):
        return None
    if header[12:16] != b"IHDR":
        return None
    return header[_PNG_BIT_DEPTH_OFFSET]


def decode_rgba16(encoded: bytes | memoryview) -> np.ndarray:
    """Decode an in-memory encoded image into 16-bit RGBA samples.

    Args:
        encoded: Encoded image bytes (any buffer, e.g. an ``mmap``)

    Returns:
        Array of shape ``(H, W, 4)`` with dtype ``uint16``

    Raises:
        DecodeError: If the data cannot be identified or decoded
    """
    if png_bit_depth(encoded) == 16:
        return _decode_png16(encoded)

    try:
        with Image.open(io.BytesIO(encoded)) as img:
            img.load()
            if img.mode in _WIDE_GRAY_MODES:
                return _gray16_to_rgba16(np.asarray(img))
            rgba = np.asarray(img.convert("RGBA"), dtype=np.uint16)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        msg = f"Failed to decode image: {e}"
        raise DecodeError(msg) from e

    return rgba * 257


def _decode_png16(encoded: bytes | memoryview) -> np.ndarray:
    """Decode a 16-bit PNG losslessly with OpenCV."""
    buf = np.frombuffer(encoded, dtype=np.uint8)
    try:
        img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        msg = f"Failed to decode image: {e}"
        raise DecodeError(msg) from e
    if img is None:
        msg = "Failed to decode image: OpenCV could not read the 16-bit PNG"
        raise DecodeError(msg)

    img = img.astype(np.uint16, copy=False)
    channels = img.shape[2] if img.ndim == 3 else 1

    if channels == 1:
        return _gray16_to_rgba16(img.reshape(img.shape[:2]))
    if channels == 2:
        rgba = _gray16_to_rgba16(img[..., 0])
        rgba[..., 3] = img[..., 1]
        return rgba
    if channels == 3:
        rgba = cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
        rgba[..., 3] = MAX_CHANNEL_VALUE
        return rgba
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)

    msg = f"Failed to decode image: unsupported channel count {channels}"
    raise DecodeError(msg)


def _gray16_to_rgba16(gray: np.ndarray) -> np.ndarray:
    """Replicate a 16-bit grayscale plane into opaque RGBA."""
    plane = np.clip(gray.astype(np.int64), 0, MAX_CHANNEL_VALUE).astype(np.uint16)
    h, w = plane.shape
    rgba = np.empty((h, w, 4), dtype=np.uint16)
    rgba[..., 0] = plane
    rgba[..., 1] = plane
    rgba[..., 2] = plane
    rgba[..., 3] = MAX_CHANNEL_VALUE
    return rgba
