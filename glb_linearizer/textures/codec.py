"""
Pillow-backed image decode / resize / PNG encode.

The transcoder only sees RGBA8 numpy arrays of shape (H, W, 4); everything
format specific stays in this module.
"""

import io

import numpy as np
from PIL import Image

from glb_linearizer.errors import DecodeFailure, EncodeFailure, MissingDimensions

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

MIME_PNG = "image/png"
MIME_JPEG = "image/jpeg"
MIME_WEBP = "image/webp"
MIME_GIF = "image/gif"
MIME_KTX2 = "image/ktx2"


def sniff_mime_type(data: bytes, declared: str | None = None) -> str | None:
    """Guess the mime type from magic bytes, falling back to the declared one."""
    if data.startswith(PNG_SIGNATURE):
        return MIME_PNG
    if data.startswith(b"\xff\xd8\xff"):
        return MIME_JPEG
    if data.startswith(b"RIFF") and len(data) >= 12 and data[8:12] == b"WEBP":
        return MIME_WEBP
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return MIME_GIF
    if data.startswith(b"\xabKTX 20\xbb\r\n\x1a\n"):
        return MIME_KTX2
    return declared


def decode_image(data: bytes, name: str | None = None) -> np.ndarray:
    """Decode compressed image bytes into an RGBA8 array."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            width, height = img.size
            if width <= 0 or height <= 0:
                raise MissingDimensions(f"Image has no dimensions ({width}x{height})", name)
            rgba = img.convert("RGBA")
    except MissingDimensions:
        raise
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeFailure(f"Could not decode image: {exc}", name) from exc
    return np.array(rgba, dtype=np.uint8)


def target_size(width: int, height: int, max_dimension: int | None) -> tuple[int, int]:
    """Uniform downscale so the longest side fits max_dimension; never below 1 px."""
    longest = max(width, height)
    if not max_dimension or longest <= max_dimension:
        return width, height
    # integer floor of dim * (max_dimension / longest)
    new_w = max(1, (width * max_dimension) // longest)
    new_h = max(1, (height * max_dimension) // longest)
    return new_w, new_h


def resize_pixels(pixels: np.ndarray, max_dimension: int | None) -> np.ndarray:
    height, width = pixels.shape[:2]
    new_w, new_h = target_size(width, height, max_dimension)
    if (new_w, new_h) == (width, height):
        return pixels
    img = Image.fromarray(pixels).resize((new_w, new_h), Image.Resampling.LANCZOS)
    return np.array(img, dtype=np.uint8)


def encode_png(pixels: np.ndarray, palette_size: int = 0, name: str | None = None) -> bytes:
    """
    Encode an RGBA8 array as PNG.

    Args:
        pixels: (H, W, 4) uint8 array.
        palette_size: 0 for lossless RGBA, otherwise the number of palette
            colors (clamped to 2..256) used for quantization.
        name: Texture name for error messages.

    Returns:
        PNG file bytes.
    """
    if pixels.ndim != 3 or pixels.shape[2] != 4 or 0 in pixels.shape[:2]:
        raise MissingDimensions(f"Cannot encode pixel buffer of shape {pixels.shape}", name)
    try:
        img = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
        if palette_size > 0:
            colors = min(256, max(2, int(palette_size)))
            img = img.quantize(colors=colors, method=Image.Quantize.FASTOCTREE)
        buf = io.BytesIO()
        img.save(buf, format="PNG", optimize=True)
    except (OSError, ValueError) as exc:
        raise EncodeFailure(f"Could not encode PNG: {exc}", name) from exc
    return buf.getvalue()
