import numpy as np
import pytest

from glb_fixtures import GlbBuilder, decode_rgba, gradient_rgba, jpeg_bytes, png_bytes, solid_rgba
from glb_linearizer.container.glb_reader import parse_glb
from glb_linearizer.events import EventLog, Severity
from glb_linearizer.manifest.model import Manifest
from glb_linearizer.manifest.scene_graph import SceneGraph
from glb_linearizer.textures import transcoder
from glb_linearizer.textures.diffuse_resolver import resolve_diffuse_set
from glb_linearizer.textures.gamma import GammaDirection, build_gamma_lut
from glb_linearizer.textures.transcoder import (
    TextureStatus,
    build_texture_records,
    plan_image_jobs,
    transcode_textures,
)
from glb_linearizer.utils.config_utils import TranscodeSettings

LOSSLESS = TranscodeSettings(quality=100, progress=False)


def _jobs(data):
    container = parse_glb(data)
    manifest = Manifest.from_json(container.manifest)
    diffuse = resolve_diffuse_set(SceneGraph.from_manifest(manifest), manifest)
    records = build_texture_records(manifest, diffuse)
    return records, plan_image_jobs(records, manifest, container.bin_chunk)


def _run(jobs, settings=LOSSLESS):
    events = EventLog()
    lut = build_gamma_lut(settings.gamma)
    outcomes = transcode_textures(jobs, settings, lut, events)
    return outcomes, events


def test_diffuse_gets_gamma_and_normal_map_does_not():
    b = GlbBuilder()
    albedo = b.add_texture(b.add_image(png_bytes(solid_rgba(4, 4, (128, 128, 128, 200)))))
    normal = b.add_texture(b.add_image(png_bytes(solid_rgba(4, 4, (128, 128, 255, 255)))))
    b.add_mesh_node(b.add_material(base=albedo, normal=normal))

    records, jobs = _jobs(b.build())
    _run(jobs)

    lut = build_gamma_lut(GammaDirection.DELINEARIZE)
    assert [r.is_diffuse for r in records] == [True, False]
    assert all(r.status is TextureStatus.MODIFIED for r in records)
    converted = decode_rgba(records[0].new_bytes)
    assert converted[0, 0].tolist() == [lut[128], lut[128], lut[128], 200]
    assert np.array_equal(decode_rgba(records[1].new_bytes), solid_rgba(4, 4, (128, 128, 255, 255)))


def test_shared_image_is_one_job_with_gamma():
    b = GlbBuilder()
    image = b.add_image(png_bytes(solid_rgba(4, 4)))
    base = b.add_texture(image)
    other = b.add_texture(image)
    b.add_mesh_node(b.add_material(base=base, emissive=other))

    records, jobs = _jobs(b.build())
    assert len(jobs) == 1
    assert jobs[0].apply_gamma
    assert len(jobs[0].records) == 2

    _run(jobs)
    assert records[0].new_bytes == records[1].new_bytes


def test_textures_without_embedded_image_get_no_job():
    b = GlbBuilder()
    b.doc["images"].append({"uri": "external.png"})
    b.add_texture(0)
    b.doc["textures"].append({})
    records, jobs = _jobs(b.build())

    assert jobs == []
    assert records[0].reason == "image is not stored in the binary chunk"
    assert records[1].reason == "texture has no source image"


def test_png_that_grows_is_preserved(monkeypatch):
    source = png_bytes(solid_rgba(8, 8))
    b = GlbBuilder()
    b.add_mesh_node(b.add_material(base=b.add_texture(b.add_image(source, name="tiny"))))
    records, jobs = _jobs(b.build())

    monkeypatch.setattr(transcoder, "encode_png", lambda *a, **kw: b"\x89PNG" + b"\x00" * 4096)
    outcomes, events = _run(jobs)

    assert records[0].status is TextureStatus.UNMODIFIED
    assert records[0].new_bytes is None
    assert records[0].final_size == len(source)
    assert "Preserving original" in outcomes[0].reason
    assert any("Preserving original" in e.message for e in events.by_severity(Severity.WARNING))


def test_jpeg_is_always_converted(monkeypatch):
    source = jpeg_bytes(gradient_rgba(16, 16))
    b = GlbBuilder()
    b.add_mesh_node(b.add_material(base=b.add_texture(b.add_image(source, "image/jpeg"))))
    records, jobs = _jobs(b.build())
    assert jobs[0].mime_type == "image/jpeg"

    big = b"\x89PNG" + b"\x00" * (len(source) * 2)
    monkeypatch.setattr(transcoder, "encode_png", lambda *a, **kw: big)
    _run(jobs)

    assert records[0].status is TextureStatus.MODIFIED
    assert records[0].new_bytes == big


def test_undecodable_image_keeps_original_bytes():
    b = GlbBuilder()
    b.add_mesh_node(b.add_material(base=b.add_texture(b.add_image(b"not a png", name="junk"))))
    records, jobs = _jobs(b.build())

    outcomes, events = _run(jobs)

    assert records[0].status is TextureStatus.UNMODIFIED
    assert records[0].new_bytes is None
    assert outcomes[0].error is not None
    errors = events.by_severity(Severity.ERROR)
    assert len(errors) == 1
    assert "'junk'" in errors[0].message


def test_resize_is_reported():
    b = GlbBuilder()
    b.add_mesh_node(b.add_material(base=b.add_texture(b.add_image(png_bytes(gradient_rgba(64, 32))))))
    records, jobs = _jobs(b.build())

    outcomes, events = _run(jobs, TranscodeSettings(quality=100, max_dimension=16, progress=False))

    assert outcomes[0].resized_to == (16, 8)
    assert decode_rgba(records[0].new_bytes).shape == (8, 16, 4)
    assert any("resized to 16x8" in e.message for e in events.events)


@pytest.mark.parametrize("workers", [1, 4])
def test_outcomes_follow_job_order(workers):
    b = GlbBuilder()
    for i in range(6):
        tex = b.add_texture(b.add_image(png_bytes(solid_rgba(4 + i, 4))))
        b.add_mesh_node(b.add_material(base=tex))
    records, jobs = _jobs(b.build())

    outcomes, _ = _run(jobs, TranscodeSettings(quality=100, max_workers=workers, progress=False))

    assert [o.job.image_index for o in outcomes] == list(range(6))
    assert [decode_rgba(r.new_bytes).shape[1] for r in records] == [4, 5, 6, 7, 8, 9]


def test_images_sharing_a_view_are_one_job():
    b = GlbBuilder()
    b.add_image(png_bytes(solid_rgba(4, 4)))
    b.doc["images"].append({"bufferView": 0, "mimeType": "image/png"})
    normal = b.add_texture(1)
    albedo = b.add_texture(0)
    b.add_mesh_node(b.add_material(base=albedo, normal=normal))

    records, jobs = _jobs(b.build())

    assert len(jobs) == 1
    assert jobs[0].view_index == 0
    assert jobs[0].image_indices == [1, 0]
    assert jobs[0].apply_gamma
    _run(jobs)
    assert records[0].new_bytes is records[1].new_bytes
