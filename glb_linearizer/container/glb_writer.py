"""
Write the canonical two-chunk GLB (header + JSON chunk + BIN chunk).
"""

import json
import struct
from typing import Any, Dict

from glb_linearizer.container.glb_reader import (
    CHUNK_HEADER_SIZE,
    CHUNK_TYPE_BIN,
    CHUNK_TYPE_JSON,
    GLB_HEADER_SIZE,
    GLB_MAGIC,
    GLB_VERSION,
)


def padding_for(length: int) -> int:
    return (4 - (length % 4)) % 4


def pad_to_4(b: bytes, fill: bytes = b" ") -> bytes:
    pad = padding_for(len(b))
    if pad:
        return b + (fill * pad)
    return b


def encode_manifest(manifest: Dict[str, Any]) -> bytes:
    return json.dumps(manifest, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def assemble_glb(manifest: Dict[str, Any], bin_payload: bytes) -> bytes:
    """
    Serialize a manifest and binary payload into GLB bytes.

    The BIN chunk is always emitted, with zero length when the payload is empty.

    Args:
        manifest: glTF JSON document whose bufferViews/buffers already describe
            the layout of bin_payload.
        bin_payload: Binary buffer 0.

    Returns:
        Complete GLB file bytes.
    """
    json_padded = pad_to_4(encode_manifest(manifest), b" ")
    bin_padded = pad_to_4(bytes(bin_payload), b"\x00")

    total_length = (
        GLB_HEADER_SIZE
        + CHUNK_HEADER_SIZE + len(json_padded)
        + CHUNK_HEADER_SIZE + len(bin_padded)
    )

    parts = [
        struct.pack("<4sII", GLB_MAGIC, GLB_VERSION, total_length),
        struct.pack("<I4s", len(json_padded), CHUNK_TYPE_JSON),
        json_padded,
        struct.pack("<I4s", len(bin_padded), CHUNK_TYPE_BIN),
        bin_padded,
    ]
    return b"".join(parts)
