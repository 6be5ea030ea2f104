"""
GLB conversion pipeline.

Workflow:
1) Parse the container into manifest + BIN payload.
2) Resolve which textures are diffuse maps from the scene graph.
3) Transcode every embedded image (fan-out, then join).
4) Plan the new BIN layout and copy bytes into place.
5) Assemble the GLB and report before/after sizes.

Nothing is shared between runs; every call owns its manifest, buffers and records.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from glb_linearizer.container.glb_reader import parse_glb
from glb_linearizer.container.glb_writer import assemble_glb
from glb_linearizer.container.layout import materialize_layout, plan_layout
from glb_linearizer.errors import GlbError
from glb_linearizer.events import EventCallback, EventLog, LogEvent
from glb_linearizer.manifest.model import Manifest
from glb_linearizer.manifest.scene_graph import SceneGraph
from glb_linearizer.report import SizeReport, build_size_report, emit_size_report
from glb_linearizer.textures.codec import MIME_PNG
from glb_linearizer.textures.diffuse_resolver import resolve_diffuse_set
from glb_linearizer.textures.gamma import build_gamma_lut
from glb_linearizer.textures.transcoder import (
    TextureRecord,
    build_texture_records,
    plan_image_jobs,
    transcode_textures,
)
from glb_linearizer.utils.config_utils import TranscodeSettings

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    output: bytes
    report: SizeReport
    records: List[TextureRecord] = field(default_factory=list)
    events: List[LogEvent] = field(default_factory=list)


def convert_glb(
    data: bytes,
    settings: Optional[TranscodeSettings] = None,
    on_event: Optional[EventCallback] = None,
) -> ConversionResult:
    """
    Convert GLB bytes and return the new GLB bytes with its size report.

    Args:
        data: Original GLB file contents.
        settings: Gamma direction and size controls; defaults when None.
        on_event: Called with each LogEvent as the run progresses.

    Returns:
        ConversionResult.

    Raises:
        ContainerError: the input is not a usable GLB.
        LayoutAssemblyMismatch: the rebuilt BIN chunk failed its integrity check.
    """
    settings = settings or TranscodeSettings()
    events = EventLog(on_event)
    try:
        return _convert(bytes(data), settings, events)
    except GlbError as exc:
        events.error(f"[FATAL] {type(exc).__name__}: {exc}")
        raise
    except Exception as exc:
        events.error(f"[FATAL] An unexpected error occurred during GLB reconstruction: {exc}")
        raise


def _convert(data: bytes, settings: TranscodeSettings, events: EventLog) -> ConversionResult:
    events.info("Starting GLB processing...")
    events.info(f"Settings: {settings.describe()}")

    container = parse_glb(data)
    manifest = Manifest.from_json(container.manifest)
    for warning in manifest.validate(len(container.bin_chunk)):
        events.warning(warning)
    events.info("GLB parsed successfully. Analyzing model assets...")

    # -------------------------------------------------------
    # Diffuse set
    # -------------------------------------------------------
    graph = SceneGraph.from_manifest(manifest)
    diffuse = resolve_diffuse_set(graph, manifest)
    for warning in diffuse.warnings:
        events.warning(warning)
    events.info(f"Found {len(manifest.textures)} textures ({len(diffuse)} diffuse).")

    # -------------------------------------------------------
    # Transcode (join barrier inside transcode_textures)
    # -------------------------------------------------------
    records = build_texture_records(manifest, diffuse)
    jobs = plan_image_jobs(records, manifest, container.bin_chunk)
    queued = {id(record) for job in jobs for record in job.records}
    for record in records:
        if id(record) not in queued:
            events.info(f"   > '{record.name}' skipped: {record.reason}")
    lut = build_gamma_lut(settings.gamma)
    transcode_textures(jobs, settings, lut, events)
    events.success("All textures processed. Re-packing GLB...")

    replacements = {}
    replaced_images = []
    for job in jobs:
        new_bytes = job.records[0].new_bytes
        if new_bytes is not None:
            replacements[job.view_index] = new_bytes
            replaced_images.extend(job.image_indices)
    logger.debug(f"Replacing {len(replacements)} of {len(jobs)} image bufferView(s)")

    # -------------------------------------------------------
    # Layout: pass 1 plan, pass 2 copy
    # -------------------------------------------------------
    events.info("--- Rebuilding binary chunk ---")
    events.info("Pass 1: Calculating new layout...")
    external = len(manifest.buffer_views) - len(manifest.glb_views())
    if external:
        events.warning(f"{external} bufferView(s) reference external buffers and keep their layout")
    plan = plan_layout(manifest, container.bin_chunk, replacements)
    events.info(f"Pass 1: New binary size: {plan.total_size} bytes")
    events.info("Pass 2: Assembling new binary buffer...")
    payload = materialize_layout(plan)
    events.info(f"Pass 2: Assembly complete. Final size: {len(payload)} bytes.")

    doc = plan.apply_to(container.manifest)
    for image_index in replaced_images:
        doc["images"][image_index]["mimeType"] = MIME_PNG

    output = assemble_glb(doc, payload)
    events.success("Export complete!")

    report = build_size_report(records, len(data), output)
    emit_size_report(report, events)
    return ConversionResult(output=output, report=report, records=records, events=events.events)
