"""
Inspect GLB structure and texture usage.

Usage:
    glb-inspect <path_to_glb>

    Or to compare an input with its converted output:
    glb-inspect <original_glb> <converted_glb>
"""

import sys
from pathlib import Path
from typing import Any, Dict, List

from glb_linearizer.container.glb_reader import parse_glb
from glb_linearizer.errors import GlbError
from glb_linearizer.manifest.model import Manifest, TextureSlot
from glb_linearizer.manifest.scene_graph import SceneGraph
from glb_linearizer.textures.codec import sniff_mime_type
from glb_linearizer.textures.diffuse_resolver import resolve_diffuse_set


def material_bindings(manifest: Manifest) -> List[Dict[str, int]]:
    """Per material: slot name -> texture index."""
    return [
        {slot.value: tex for slot, tex in mat.slots.items()}
        for mat in manifest.materials
    ]


def summarize_glb(data: bytes) -> Dict[str, Any]:
    """Return header, chunk and texture information for GLB bytes."""
    container = parse_glb(data)
    manifest = Manifest.from_json(container.manifest)
    manifest.validate(len(container.bin_chunk))
    diffuse = resolve_diffuse_set(SceneGraph.from_manifest(manifest), manifest)

    images = []
    for img in manifest.images:
        entry: Dict[str, Any] = {
            "index": img.index,
            "name": img.name,
            "bufferView": img.buffer_view,
            "mimeType": img.mime_type,
        }
        if img.buffer_view is not None and manifest.is_glb_resident(
            manifest.buffer_views[img.buffer_view]
        ):
            bv = manifest.buffer_views[img.buffer_view]
            payload = container.bin_chunk[bv.byte_offset : bv.end]
            entry["byteLength"] = len(payload)
            entry["sniffedType"] = sniff_mime_type(payload)
        images.append(entry)

    return {
        "version": container.version,
        "totalLength": container.total_length,
        "chunks": [(tag.decode("ascii", errors="replace"), length) for tag, length in container.chunks],
        "binLength": len(container.bin_chunk),
        "bufferViews": [
            {"index": bv.index, "byteOffset": bv.byte_offset, "byteLength": bv.byte_length}
            for bv in manifest.buffer_views
        ],
        "images": images,
        "textures": [
            {"index": tex.index, "source": tex.source, "diffuse": diffuse.is_diffuse(tex.index)}
            for tex in manifest.textures
        ],
        "materials": material_bindings(manifest),
    }


def inspect_glb(glb_path: Path) -> Dict[str, Any]:
    """Print and return the summary of a GLB file."""
    print(f"\n{'='*70}")
    print(f"Inspecting: {glb_path.name}")
    print(f"{'='*70}")

    summary = summarize_glb(glb_path.read_bytes())

    print(f"\n📦 GLB Header:")
    print(f"   Version: {summary['version']}")
    print(f"   Total Length: {summary['totalLength']:,} bytes")

    print(f"\n📄 Chunks:")
    for tag, length in summary["chunks"]:
        print(f"   {tag!r}: {length:,} bytes")

    print(f"\n🔍 BufferViews ({len(summary['bufferViews'])}):")
    for bv in summary["bufferViews"]:
        aligned = "" if bv["byteOffset"] % 4 == 0 else "  ⚠️  not 4-byte aligned"
        print(f"   {bv['index']}: offset={bv['byteOffset']:,} length={bv['byteLength']:,}{aligned}")

    print(f"\n🖼  Images ({len(summary['images'])}):")
    for img in summary["images"]:
        size = f"{img['byteLength']:,} bytes" if "byteLength" in img else "external"
        print(f"   {img['index']}: {img['name'] or 'unnamed'} "
              f"mimeType={img['mimeType']} sniffed={img.get('sniffedType')} {size}")

    print(f"\n🎨 Textures ({len(summary['textures'])}):")
    for tex in summary["textures"]:
        kind = "diffuse" if tex["diffuse"] else "data"
        print(f"   {tex['index']}: source={tex['source']} ({kind})")

    print(f"\n🎨 Materials ({len(summary['materials'])}):")
    for idx, slots in enumerate(summary["materials"]):
        print(f"   Material {idx}: {slots or 'no textures'}")

    return summary


def compare_glbs(glb1_path: Path, glb2_path: Path) -> List[str]:
    """Compare logical content of two GLBs; returns the differences found."""
    print("\n" + "="*70)
    print("COMPARISON MODE")
    print("="*70)

    s1 = inspect_glb(glb1_path)
    s2 = inspect_glb(glb2_path)

    differences = []
    if len(s1["textures"]) != len(s2["textures"]):
        differences.append(f"texture count {len(s1['textures'])} != {len(s2['textures'])}")
    if s1["materials"] != s2["materials"]:
        differences.append("material texture bindings differ")
    if len(s1["bufferViews"]) != len(s2["bufferViews"]):
        differences.append(f"bufferView count {len(s1['bufferViews'])} != {len(s2['bufferViews'])}")

    print("\n" + "="*70)
    print("🔍 KEY DIFFERENCES")
    print("="*70)
    print(f"   File size: {glb1_path.stat().st_size:,} -> {glb2_path.stat().st_size:,} bytes")
    if differences:
        for diff in differences:
            print(f"   ⚠️  {diff}")
    else:
        print(f"   ✓ Same textures and material bindings ({TextureSlot.BASE_COLOR.value} et al.)")
    return differences


def main(argv: List[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: glb-inspect <glb_file> [<comparison_glb>]")
        return 1

    glb1 = Path(argv[0])
    if not glb1.exists():
        print(f"ERROR: File not found: {glb1}")
        return 1

    try:
        if len(argv) >= 2:
            glb2 = Path(argv[1])
            if not glb2.exists():
                print(f"ERROR: File not found: {glb2}")
                return 1
            differences = compare_glbs(glb1, glb2)
            rc = 1 if differences else 0
        else:
            inspect_glb(glb1)
            rc = 0
    except GlbError as exc:
        print(f"ERROR: {exc}")
        return 2

    print("\n" + "="*70)
    print("✓ Inspection complete")
    print("="*70 + "\n")
    return rc


if __name__ == "__main__":
    sys.exit(main())
