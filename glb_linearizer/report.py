"""
Before/after size report for textures and the whole file.

Final texture sizes are read back from the assembled output rather than taken
from the transcoder, so a layout bug shows up as a mismatch here.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from glb_linearizer.container.glb_reader import parse_glb
from glb_linearizer.events import EventLog
from glb_linearizer.manifest.model import Manifest
from glb_linearizer.textures.transcoder import TextureRecord, TextureStatus
from glb_linearizer.utils.formatting import format_bytes


@dataclass
class TextureSizeChange:
    texture_index: int
    name: str
    original_size: int
    expected_size: int
    final_size: int
    modified: bool
    reason: Optional[str] = None

    @property
    def status(self) -> str:
        return TextureStatus.MODIFIED.value if self.modified else TextureStatus.UNMODIFIED.value


@dataclass
class SizeReport:
    original_file_size: int
    new_file_size: int
    textures: List[TextureSizeChange] = field(default_factory=list)
    mismatches: List[str] = field(default_factory=list)

    @property
    def saved_bytes(self) -> int:
        return self.original_file_size - self.new_file_size


def build_size_report(
    records: List[TextureRecord], original_file_size: int, output: bytes
) -> SizeReport:
    """
    Reconcile per-texture sizes against the assembled GLB.

    Args:
        records: Texture records after transcoding.
        original_file_size: Size of the input file in bytes.
        output: Assembled GLB bytes.

    Returns:
        SizeReport; records whose image is not stored in the BIN chunk are
        left out.
    """
    container = parse_glb(output)
    manifest = Manifest.from_json(container.manifest)
    report = SizeReport(original_file_size=original_file_size, new_file_size=len(output))

    for record in records:
        if record.view_index is None or record.original_range is None:
            continue
        bv = manifest.buffer_views[record.view_index]
        if not manifest.is_glb_resident(bv):
            continue
        final_size = len(container.bin_chunk[bv.byte_offset : bv.end])
        expected = record.final_size
        if final_size != expected:
            report.mismatches.append(
                f"'{record.name}': expected {expected} bytes in output, found {final_size}"
            )
        report.textures.append(
            TextureSizeChange(
                texture_index=record.index,
                name=record.name,
                original_size=record.original_size,
                expected_size=expected,
                final_size=final_size,
                modified=record.status is TextureStatus.MODIFIED,
                reason=record.reason,
            )
        )
    return report


def emit_size_report(report: SizeReport, events: EventLog) -> None:
    events.info("--- Texture Size Report ---")
    for change in report.textures:
        events.info(
            f"'{change.name}' ({change.status}): "
            f"{format_bytes(change.original_size)} -> {format_bytes(change.final_size)}"
        )
    for mismatch in report.mismatches:
        events.warning(f"Size mismatch {mismatch}")
    events.info("---------------------------")
    events.info("--- Total File Size ---")
    events.info(f"Original Model: {format_bytes(report.original_file_size)}")
    events.info(f"New Model:      {format_bytes(report.new_file_size)}")
