import json
import struct

import pytest

from glb_fixtures import pack_glb
from glb_linearizer.container.glb_reader import parse_glb
from glb_linearizer.container.glb_writer import assemble_glb, pad_to_4
from glb_linearizer.errors import InvalidManifestEncoding, MalformedContainer, MissingManifest

DOC = {"asset": {"version": "2.0"}, "buffers": [{"byteLength": 6}]}


def test_parse_returns_manifest_and_bin():
    container = parse_glb(pack_glb(DOC, b"abcdef"))
    assert container.manifest == DOC
    # payload keeps its zero padding
    assert container.bin_chunk == b"abcdef\x00\x00"
    assert container.has_bin_chunk
    assert container.version == 2
    assert [tag for tag, _ in container.chunks] == [b"JSON", b"BIN\x00"]


def test_json_only_file_has_empty_payload():
    container = parse_glb(pack_glb({"asset": {"version": "2.0"}}, None))
    assert container.bin_chunk == b""
    assert not container.has_bin_chunk


def test_unknown_chunks_are_skipped():
    data = pack_glb(DOC, b"abcdef", extra_chunks=[(b"XTRA", b"1234")])
    container = parse_glb(data)
    assert container.bin_chunk.startswith(b"abcdef")
    assert (b"XTRA", 4) in container.chunks


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: b"gltf" + d[4:],
        lambda d: d[:4] + struct.pack("<I", 1) + d[8:],
        lambda d: d[:10],
        lambda d: d[:8] + struct.pack("<I", len(d) + 100) + d[12:],
    ],
    ids=["magic", "version", "truncated-header", "declared-length"],
)
def test_bad_header_is_malformed(mutate):
    with pytest.raises(MalformedContainer):
        parse_glb(mutate(pack_glb(DOC, b"abcdef")))


def test_first_chunk_must_be_json():
    payload = b"\x00" * 8
    body = struct.pack("<I4s", len(payload), b"BIN\x00") + payload
    data = struct.pack("<4sII", b"glTF", 2, 12 + len(body)) + body
    with pytest.raises(MissingManifest):
        parse_glb(data)


def test_header_without_chunks_is_missing_manifest():
    with pytest.raises(MissingManifest):
        parse_glb(struct.pack("<4sII", b"glTF", 2, 12))


@pytest.mark.parametrize("payload", [b"\xff\xfe{}  ", b"{not json", b"[1, 2]  "])
def test_bad_json_payload(payload):
    body = struct.pack("<I4s", len(payload), b"JSON") + payload
    data = struct.pack("<4sII", b"glTF", 2, 12 + len(body)) + body
    with pytest.raises(InvalidManifestEncoding):
        parse_glb(data)


def test_truncated_chunk_is_malformed():
    data = pack_glb(DOC, b"abcdef")
    # shrink the declared total so the BIN chunk overruns it
    data = data[:8] + struct.pack("<I", len(data) - 4) + data[12:]
    with pytest.raises(MalformedContainer):
        parse_glb(data)


def test_assemble_layout_and_padding():
    manifest = {"asset": {"version": "2.0"}, "buffers": [{"byteLength": 5}]}
    out = assemble_glb(manifest, b"12345")

    magic, version, total = struct.unpack_from("<4sII", out, 0)
    json_len, json_tag = struct.unpack_from("<I4s", out, 12)
    bin_len, bin_tag = struct.unpack_from("<I4s", out, 20 + json_len)

    assert (magic, version, json_tag, bin_tag) == (b"glTF", 2, b"JSON", b"BIN\x00")
    assert json_len % 4 == 0 and bin_len % 4 == 0
    assert total == len(out) == 12 + 8 + json_len + 8 + bin_len
    json_payload = out[20 : 20 + json_len]
    assert json.loads(json_payload.decode("utf-8")) == manifest
    assert b"\x00" not in json_payload
    assert out[28 + json_len :] == b"12345\x00\x00\x00"


def test_assemble_empty_payload_still_emits_bin_chunk():
    out = assemble_glb({"asset": {"version": "2.0"}}, b"")
    container = parse_glb(out)
    assert container.has_bin_chunk
    assert container.chunks[-1] == (b"BIN\x00", 0)
    assert len(out) == 12 + 8 + container.chunks[0][1] + 8


def test_pad_to_4():
    assert pad_to_4(b"abc") == b"abc "
    assert pad_to_4(b"abcd") == b"abcd"
    assert pad_to_4(b"a", b"\x00") == b"a\x00\x00\x00"
