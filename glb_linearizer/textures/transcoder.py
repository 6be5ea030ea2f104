"""
Per-texture transcode: decode -> gamma (diffuse only) -> resize -> PNG encode.

Workflow:
1) Build one TextureRecord per manifest texture.
2) Group records by the bufferView holding their image; each view is
   transcoded once and is gamma corrected when any texture using it is a
   diffuse map.
3) Run every image on a thread pool and wait for all of them (join barrier).
4) Write the outcomes back into the records on the calling thread.

Failures are per texture: the record keeps its original bytes and is
reported as unmodified.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from glb_linearizer.errors import TextureError
from glb_linearizer.events import EventLog
from glb_linearizer.manifest.model import Manifest
from glb_linearizer.textures.codec import (
    MIME_PNG,
    decode_image,
    encode_png,
    resize_pixels,
    sniff_mime_type,
)
from glb_linearizer.textures.diffuse_resolver import DiffuseSet
from glb_linearizer.textures.gamma import apply_gamma_lut
from glb_linearizer.utils.config_utils import TranscodeSettings
from glb_linearizer.utils.formatting import format_bytes

logger = logging.getLogger(__name__)


class TextureStatus(str, Enum):
    MODIFIED = "modified"
    UNMODIFIED = "unmodified"


@dataclass
class TextureRecord:
    index: int
    name: str
    image_index: Optional[int]
    view_index: Optional[int]
    # (byteOffset, byteLength) of the source image in the original BIN chunk
    original_range: Optional[Tuple[int, int]]
    mime_type_guess: Optional[str]
    is_diffuse: bool
    new_bytes: Optional[bytes] = None
    status: TextureStatus = TextureStatus.UNMODIFIED
    reason: Optional[str] = None

    @property
    def original_size(self) -> int:
        return self.original_range[1] if self.original_range else 0

    @property
    def final_size(self) -> int:
        if self.new_bytes is not None:
            return len(self.new_bytes)
        return self.original_size


@dataclass
class ImageJob:
    image_index: int
    view_index: int
    name: str
    source: bytes
    mime_type: Optional[str]
    apply_gamma: bool
    records: List[TextureRecord] = field(default_factory=list)
    # every image stored in this bufferView; the first one is image_index
    image_indices: List[int] = field(default_factory=list)


@dataclass
class TranscodeOutcome:
    job: ImageJob
    new_bytes: Optional[bytes]
    status: TextureStatus
    reason: Optional[str] = None
    error: Optional[TextureError] = None
    width: int = 0
    height: int = 0
    resized_to: Optional[Tuple[int, int]] = None


def build_texture_records(manifest: Manifest, diffuse: DiffuseSet) -> List[TextureRecord]:
    """One record per manifest texture, in manifest order."""
    records = []
    for tex in manifest.textures:
        image = manifest.texture_image(tex.index)
        view_index = image.buffer_view if image is not None else None
        original_range = None
        if view_index is not None:
            bv = manifest.buffer_views[view_index]
            original_range = (bv.byte_offset, bv.byte_length)
        name = tex.name or (image.name if image is not None else None) or f"Texture {tex.index}"
        records.append(
            TextureRecord(
                index=tex.index,
                name=name,
                image_index=image.index if image is not None else None,
                view_index=view_index,
                original_range=original_range,
                mime_type_guess=image.mime_type if image is not None else None,
                is_diffuse=diffuse.is_diffuse(tex.index),
            )
        )
    return records


def plan_image_jobs(
    records: List[TextureRecord], manifest: Manifest, bin_chunk: bytes
) -> List[ImageJob]:
    """
    Group records by the bufferView holding their image bytes.

    Images that share a bufferView share one job, so the bytes written back for
    that view are gamma corrected when any texture reaching it is diffuse.
    Records without an embedded image get no job.
    """
    jobs: Dict[int, ImageJob] = {}
    for record in records:
        if record.image_index is None:
            record.reason = "texture has no source image"
            continue
        if record.view_index is None or not manifest.is_glb_resident(
            manifest.buffer_views[record.view_index]
        ):
            record.reason = "image is not stored in the binary chunk"
            continue
        job = jobs.get(record.view_index)
        if job is None:
            offset, length = record.original_range
            source = bytes(bin_chunk[offset : offset + length])
            image = manifest.images[record.image_index]
            job = ImageJob(
                image_index=record.image_index,
                view_index=record.view_index,
                name=record.name,
                source=source,
                mime_type=sniff_mime_type(source, image.mime_type),
                apply_gamma=False,
            )
            jobs[record.view_index] = job
        if record.image_index not in job.image_indices:
            job.image_indices.append(record.image_index)
        record.mime_type_guess = job.mime_type
        job.apply_gamma = job.apply_gamma or record.is_diffuse
        job.records.append(record)
    return list(jobs.values())


def transcode_image(
    job: ImageJob,
    lut: np.ndarray,
    palette_size: int = 0,
    max_dimension: Optional[int] = None,
) -> TranscodeOutcome:
    """
    Transcode one image. Runs on a worker thread and touches nothing but its job.

    Args:
        job: Image to process.
        lut: Shared read-only gamma table.
        palette_size: Encoder palette size, 0 for lossless.
        max_dimension: Longest-side limit, None to keep the size.

    Returns:
        TranscodeOutcome; TextureError is captured rather than raised.
    """
    logger.debug(f"Transcoding image {job.image_index} ('{job.name}'), gamma={job.apply_gamma}")
    try:
        pixels = decode_image(job.source, job.name)
        height, width = pixels.shape[:2]
        if job.apply_gamma:
            pixels = apply_gamma_lut(pixels, lut)
        resized = resize_pixels(pixels, max_dimension)
        encoded = encode_png(resized, palette_size, job.name)
    except TextureError as exc:
        return TranscodeOutcome(
            job=job,
            new_bytes=None,
            status=TextureStatus.UNMODIFIED,
            reason=str(exc),
            error=exc,
        )

    resized_to = None
    if resized.shape[:2] != (height, width):
        resized_to = (resized.shape[1], resized.shape[0])

    if job.mime_type == MIME_PNG and len(encoded) > len(job.source):
        return TranscodeOutcome(
            job=job,
            new_bytes=None,
            status=TextureStatus.UNMODIFIED,
            reason=(
                f"Compressed size ({format_bytes(len(encoded))}) is larger than "
                f"original ({format_bytes(len(job.source))}). Preserving original."
            ),
            width=width,
            height=height,
            resized_to=resized_to,
        )
    return TranscodeOutcome(
        job=job,
        new_bytes=encoded,
        status=TextureStatus.MODIFIED,
        width=width,
        height=height,
        resized_to=resized_to,
    )


def _apply_outcome(outcome: TranscodeOutcome, events: EventLog) -> None:
    job = outcome.job
    for record in job.records:
        record.status = outcome.status
        record.reason = outcome.reason
        record.new_bytes = outcome.new_bytes

    if outcome.error is not None:
        events.error(
            f"Could not process texture '{job.name}': {outcome.error}. It will be preserved."
        )
        return
    gamma_note = "gamma corrected" if job.apply_gamma else "no gamma (data map)"
    events.info(f"   > '{job.name}' {outcome.width}x{outcome.height}, {gamma_note}")
    if outcome.resized_to is not None:
        events.info(f"   > '{job.name}' resized to {outcome.resized_to[0]}x{outcome.resized_to[1]}")
    if outcome.status is TextureStatus.UNMODIFIED:
        events.warning(f"   > '{job.name}': {outcome.reason}")


def transcode_textures(
    jobs: List[ImageJob],
    settings: TranscodeSettings,
    lut: np.ndarray,
    events: EventLog,
) -> List[TranscodeOutcome]:
    """
    Fan out one task per image and return once every task has settled.

    Args:
        jobs: Images to transcode.
        settings: Run configuration (palette size, max dimension, workers).
        lut: Gamma table built once for the run.
        events: Event stream; only written from the calling thread.

    Returns:
        Outcomes in job order.
    """
    if not jobs:
        return []

    palette_size = settings.palette_size
    max_dimension = settings.target_max_dimension
    quality = "lossless" if palette_size == 0 else f"palette {palette_size}"
    events.info(f"   > Compressing {len(jobs)} image(s) as PNG ({quality})")

    outcomes: Dict[int, TranscodeOutcome] = {}
    with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
        futures = {
            executor.submit(transcode_image, job, lut, palette_size, max_dimension): job
            for job in jobs
        }
        for future in tqdm(
            as_completed(futures),
            total=len(futures),
            desc="Transcoding textures",
            disable=not settings.progress,
        ):
            job = futures[future]
            outcomes[job.view_index] = future.result()

    # every future has settled; records are only written from here on
    ordered = [outcomes[job.view_index] for job in jobs]
    for outcome in ordered:
        _apply_outcome(outcome, events)
    return ordered
