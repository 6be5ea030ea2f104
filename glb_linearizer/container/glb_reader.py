"""
Split a GLB byte buffer into its JSON manifest and binary payload.

GLB files contain:
- 12-byte header (magic, version, total length)
- JSON chunk (with chunk header)
- Binary chunk (optional, with chunk header)
- any number of extension chunks, which are skipped

The reader never touches the filesystem; callers pass the raw bytes.
"""

import json
import struct
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from glb_linearizer.errors import InvalidManifestEncoding, MalformedContainer, MissingManifest

GLB_MAGIC = b"glTF"
GLB_VERSION = 2
GLB_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8

CHUNK_TYPE_JSON = b"JSON"
CHUNK_TYPE_BIN = b"BIN\x00"


@dataclass
class GlbContainer:
    manifest: Dict[str, Any]
    bin_chunk: bytes
    version: int
    total_length: int
    has_bin_chunk: bool = False
    # (type tag, payload length) for every chunk in file order
    chunks: List[Tuple[bytes, int]] = field(default_factory=list)


def _read_header(data: bytes) -> Tuple[int, int]:
    if len(data) < GLB_HEADER_SIZE:
        raise MalformedContainer("Not a valid GLB (header too short)")
    magic, version, length = struct.unpack_from("<4sII", data, 0)
    if magic != GLB_MAGIC:
        raise MalformedContainer(f"Not a GLB (magic mismatch: {magic!r})")
    if version != GLB_VERSION:
        raise MalformedContainer(f"Unsupported GLB version: {version}")
    if length > len(data):
        raise MalformedContainer(
            f"Declared length {length} exceeds the {len(data)} bytes available"
        )
    if length < GLB_HEADER_SIZE:
        raise MalformedContainer(f"Declared length {length} is shorter than the header")
    return version, length


def _decode_manifest(payload: bytes) -> Dict[str, Any]:
    # JSON chunks are space padded; some exporters pad with NUL instead
    payload = payload.rstrip(b" \x00")
    try:
        document = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidManifestEncoding(f"JSON chunk could not be decoded: {exc}") from exc
    if not isinstance(document, dict):
        raise InvalidManifestEncoding("JSON chunk root must be an object")
    return document


def parse_glb(data: bytes) -> GlbContainer:
    """Validate the header and return the manifest plus binary payload."""
    data = bytes(data)
    version, total_length = _read_header(data)

    idx = GLB_HEADER_SIZE
    if idx + CHUNK_HEADER_SIZE > total_length:
        raise MissingManifest("No chunks in GLB")
    json_len, json_type = struct.unpack_from("<I4s", data, idx)
    if json_type != CHUNK_TYPE_JSON:
        raise MissingManifest(f"First chunk is not JSON (found {json_type!r})")
    idx += CHUNK_HEADER_SIZE
    if idx + json_len > total_length:
        raise MissingManifest("JSON chunk extends beyond the end of the file")
    manifest = _decode_manifest(data[idx : idx + json_len])
    idx += json_len

    chunks: List[Tuple[bytes, int]] = [(json_type, json_len)]
    bin_chunk = b""
    has_bin = False
    while idx + CHUNK_HEADER_SIZE <= total_length:
        chunk_len, chunk_type = struct.unpack_from("<I4s", data, idx)
        idx += CHUNK_HEADER_SIZE
        if idx + chunk_len > total_length:
            raise MalformedContainer(
                f"Chunk {chunk_type!r} of {chunk_len} bytes extends beyond the end of the file"
            )
        chunks.append((chunk_type, chunk_len))
        if chunk_type == CHUNK_TYPE_BIN and not has_bin:
            bin_chunk = data[idx : idx + chunk_len]
            has_bin = True
        idx += chunk_len

    return GlbContainer(
        manifest=manifest,
        bin_chunk=bin_chunk,
        version=version,
        total_length=total_length,
        has_bin_chunk=has_bin,
        chunks=chunks,
    )
