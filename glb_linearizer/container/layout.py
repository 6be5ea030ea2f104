"""
Recompute the BIN chunk layout after texture bytes have changed size.

Pass 1 (plan_layout) decides where every buffer view goes. Pass 2
(materialize_layout) allocates the payload and copies bytes into place, then
checks that the bytes written account for the whole buffer.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from glb_linearizer.container.glb_writer import padding_for
from glb_linearizer.errors import LayoutAssemblyMismatch
from glb_linearizer.manifest.model import Manifest

logger = logging.getLogger(__name__)


@dataclass
class BufferViewLayoutPlan:
    view_index: int
    source_bytes: bytes
    original_offset: int
    new_offset: int
    new_length: int
    padding: int


@dataclass
class LayoutPlan:
    entries: List[BufferViewLayoutPlan] = field(default_factory=list)
    total_size: int = 0
    # False when buffer 0 is an external file; its byteLength is left alone
    bin_resident: bool = True

    def apply_to(self, manifest_json: Dict[str, Any]) -> Dict[str, Any]:
        """Return a deep copy of the manifest with new offsets, lengths and buffer size."""
        doc = copy.deepcopy(manifest_json)
        views = doc.get("bufferViews", [])
        for entry in self.entries:
            bv = views[entry.view_index]
            bv["byteOffset"] = entry.new_offset
            bv["byteLength"] = entry.new_length
        buffers = doc.get("buffers")
        if buffers and self.bin_resident:
            buffers[0]["byteLength"] = self.total_size
        return doc


def plan_layout(manifest: Manifest, bin_chunk: bytes, replacements: Dict[int, bytes]) -> LayoutPlan:
    """
    Pass 1: compute 4-byte aligned offsets for every BIN-resident buffer view.

    Views keep the order of their original offsets (stable, ties by index) so
    the output stays diffable against the input.

    Args:
        manifest: Parsed manifest.
        bin_chunk: Original BIN payload.
        replacements: bufferView index -> new bytes (transcoded images).

    Returns:
        LayoutPlan with one entry per relocated view.
    """
    views = sorted(manifest.glb_views(), key=lambda v: (v.byte_offset, v.index))

    plan = LayoutPlan(bin_resident=bool(manifest.buffers) and manifest.buffers[0].uri is None)
    cursor = 0
    for bv in views:
        if bv.index in replacements:
            source = bytes(replacements[bv.index])
        else:
            source = bytes(bin_chunk[bv.byte_offset : bv.end])
        padding = padding_for(cursor)
        cursor += padding
        plan.entries.append(
            BufferViewLayoutPlan(
                view_index=bv.index,
                source_bytes=source,
                original_offset=bv.byte_offset,
                new_offset=cursor,
                new_length=len(source),
                padding=padding,
            )
        )
        logger.debug(
            f"BV {bv.index}: old offset: {bv.byte_offset}, new offset: {cursor}, "
            f"length: {len(source)}, padding: {padding}"
        )
        cursor += len(source)
    plan.total_size = cursor
    return plan


def materialize_layout(plan: LayoutPlan) -> bytes:
    """
    Pass 2: copy every view's bytes to its planned offset.

    Raises:
        LayoutAssemblyMismatch: when the bytes written plus padding do not
            add up to the planned size.
    """
    payload = bytearray(plan.total_size)
    written = 0
    for entry in plan.entries:
        end = entry.new_offset + entry.new_length
        # slice assignment on a bytearray grows it silently when end overruns
        payload[entry.new_offset : end] = entry.source_bytes
        written += entry.padding + len(entry.source_bytes)

    if written != plan.total_size:
        raise LayoutAssemblyMismatch(plan.total_size, written)
    if len(payload) != plan.total_size:
        raise LayoutAssemblyMismatch(plan.total_size, len(payload))
    return bytes(payload)
