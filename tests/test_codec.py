import numpy as np
import pytest

from glb_fixtures import decode_rgba, gradient_rgba, jpeg_bytes, png_bytes, solid_rgba
from glb_linearizer.errors import DecodeFailure, MissingDimensions
from glb_linearizer.textures.codec import (
    MIME_JPEG,
    MIME_PNG,
    decode_image,
    encode_png,
    resize_pixels,
    sniff_mime_type,
    target_size,
)


def test_sniff_mime_type():
    assert sniff_mime_type(png_bytes(solid_rgba(2, 2))) == MIME_PNG
    assert sniff_mime_type(jpeg_bytes(solid_rgba(8, 8))) == MIME_JPEG
    assert sniff_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert sniff_mime_type(b"????", "image/png") == "image/png"
    assert sniff_mime_type(b"????") is None


def test_decode_png_to_rgba():
    pixels = gradient_rgba(5, 3)
    out = decode_image(png_bytes(pixels))
    assert out.shape == (3, 5, 4)
    assert np.array_equal(out, pixels)


def test_decode_jpeg_adds_opaque_alpha():
    out = decode_image(jpeg_bytes(solid_rgba(8, 8, (200, 10, 10, 255))))
    assert out.shape == (8, 8, 4)
    assert np.all(out[..., 3] == 255)


def test_decode_garbage_raises_decode_failure():
    with pytest.raises(DecodeFailure) as exc_info:
        decode_image(b"definitely not an image", "broken")
    assert exc_info.value.texture_name == "broken"


@pytest.mark.parametrize(
    "size, limit, expected",
    [
        ((64, 64), None, (64, 64)),
        ((64, 64), 1024, (64, 64)),
        ((2048, 1024), 1024, (1024, 512)),
        ((1000, 3000), 1024, (341, 1024)),
        ((4096, 2), 1024, (1024, 1)),
        ((5000, 1), 1024, (1024, 1)),
    ],
)
def test_target_size(size, limit, expected):
    assert target_size(*size, limit) == expected


def test_resize_pixels():
    out = resize_pixels(gradient_rgba(40, 20), 10)
    assert out.shape == (5, 10, 4)
    same = gradient_rgba(8, 8)
    assert resize_pixels(same, 10) is same


def test_encode_lossless_round_trip():
    pixels = gradient_rgba(16, 16)
    data = encode_png(pixels, 0)
    assert data.startswith(b"\x89PNG")
    assert np.array_equal(decode_rgba(data), pixels)


def test_encode_with_palette_limits_colors():
    pixels = gradient_rgba(64, 64)
    data = encode_png(pixels, 16)
    decoded = decode_rgba(data)
    assert decoded.shape == pixels.shape
    assert len(np.unique(decoded.reshape(-1, 4), axis=0)) <= 16


def test_encode_empty_buffer_is_missing_dimensions():
    with pytest.raises(MissingDimensions):
        encode_png(np.zeros((0, 4, 4), dtype=np.uint8))
