"""
Typed view of the glTF JSON manifest.

Only the parts the transcoder needs are modelled: buffers, bufferViews,
images, textures, materials, meshes, nodes and scenes. The raw document is
kept on the Manifest so every other key round-trips unchanged.

Material texture references are stored in an explicit slot table keyed by
TextureSlot instead of being discovered by scanning arbitrary fields.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from glb_linearizer.errors import MalformedContainer

UNLIT_EXTENSION = "KHR_materials_unlit"
SPEC_GLOSS_EXTENSION = "KHR_materials_pbrSpecularGlossiness"


class TextureSlot(str, Enum):
    BASE_COLOR = "baseColor"
    METALLIC_ROUGHNESS = "metallicRoughness"
    NORMAL = "normal"
    OCCLUSION = "occlusion"
    EMISSIVE = "emissive"
    SPECULAR_GLOSSINESS = "specularGlossiness"


class MaterialKind(str, Enum):
    METALLIC_ROUGHNESS = "metallicRoughness"
    UNLIT = "unlit"
    SPECULAR_GLOSSINESS = "specularGlossiness"


@dataclass
class BufferRecord:
    index: int
    byte_length: int
    uri: Optional[str] = None


@dataclass
class BufferViewRecord:
    index: int
    buffer: int
    byte_offset: int
    byte_length: int
    byte_stride: Optional[int] = None

    @property
    def end(self) -> int:
        return self.byte_offset + self.byte_length


@dataclass
class ImageRecord:
    index: int
    buffer_view: Optional[int] = None
    mime_type: Optional[str] = None
    uri: Optional[str] = None
    name: Optional[str] = None


@dataclass
class TextureEntry:
    index: int
    source: Optional[int] = None
    name: Optional[str] = None


@dataclass
class MaterialRecord:
    index: int
    name: Optional[str]
    kind: MaterialKind
    slots: Dict[TextureSlot, int] = field(default_factory=dict)

    def texture_for(self, slot: TextureSlot) -> Optional[int]:
        return self.slots.get(slot)


@dataclass
class PrimitiveRecord:
    material: Optional[int] = None


@dataclass
class MeshRecord:
    index: int
    name: Optional[str]
    primitives: List[PrimitiveRecord] = field(default_factory=list)


@dataclass
class NodeRecord:
    index: int
    name: Optional[str]
    mesh: Optional[int] = None
    children: List[int] = field(default_factory=list)


@dataclass
class SceneRecord:
    index: int
    name: Optional[str]
    nodes: List[int] = field(default_factory=list)


def _as_int(value: Any, where: str, default: Optional[int] = None) -> Optional[int]:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedContainer(f"{where} must be a non-negative integer, got {value!r}")
    return value


def _list(doc: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    items = doc.get(key, [])
    if not isinstance(items, list):
        raise MalformedContainer(f"'{key}' must be an array")
    return [item if isinstance(item, dict) else {} for item in items]


def _slot_index(info: Any) -> Optional[int]:
    if isinstance(info, dict):
        index = info.get("index")
        if isinstance(index, int) and not isinstance(index, bool):
            return index
    return None


def _parse_material(index: int, mat: Dict[str, Any]) -> MaterialRecord:
    extensions = mat.get("extensions") or {}
    pbr = mat.get("pbrMetallicRoughness") or {}

    candidates: Dict[TextureSlot, Any] = {}
    if SPEC_GLOSS_EXTENSION in extensions:
        kind = MaterialKind.SPECULAR_GLOSSINESS
        sg = extensions[SPEC_GLOSS_EXTENSION] or {}
        candidates[TextureSlot.BASE_COLOR] = sg.get("diffuseTexture")
        candidates[TextureSlot.SPECULAR_GLOSSINESS] = sg.get("specularGlossinessTexture")
    else:
        kind = MaterialKind.UNLIT if UNLIT_EXTENSION in extensions else MaterialKind.METALLIC_ROUGHNESS
        candidates[TextureSlot.BASE_COLOR] = pbr.get("baseColorTexture")
        candidates[TextureSlot.METALLIC_ROUGHNESS] = pbr.get("metallicRoughnessTexture")
    candidates[TextureSlot.NORMAL] = mat.get("normalTexture")
    candidates[TextureSlot.OCCLUSION] = mat.get("occlusionTexture")
    candidates[TextureSlot.EMISSIVE] = mat.get("emissiveTexture")

    slots = {}
    for slot, info in candidates.items():
        tex_index = _slot_index(info)
        if tex_index is not None:
            slots[slot] = tex_index
    return MaterialRecord(index=index, name=mat.get("name"), kind=kind, slots=slots)


@dataclass
class Manifest:
    raw: Dict[str, Any]
    buffers: List[BufferRecord] = field(default_factory=list)
    buffer_views: List[BufferViewRecord] = field(default_factory=list)
    images: List[ImageRecord] = field(default_factory=list)
    textures: List[TextureEntry] = field(default_factory=list)
    materials: List[MaterialRecord] = field(default_factory=list)
    meshes: List[MeshRecord] = field(default_factory=list)
    nodes: List[NodeRecord] = field(default_factory=list)
    scenes: List[SceneRecord] = field(default_factory=list)
    default_scene: Optional[int] = None

    @classmethod
    def from_json(cls, doc: Dict[str, Any]) -> "Manifest":
        """Build typed records from a parsed glTF document."""
        buffers = [
            BufferRecord(
                index=i,
                byte_length=_as_int(b.get("byteLength"), f"buffers[{i}].byteLength", 0),
                uri=b.get("uri"),
            )
            for i, b in enumerate(_list(doc, "buffers"))
        ]
        views = []
        for i, bv in enumerate(_list(doc, "bufferViews")):
            byte_length = _as_int(bv.get("byteLength"), f"bufferViews[{i}].byteLength")
            if byte_length is None:
                raise MalformedContainer(f"bufferViews[{i}] is missing byteLength")
            views.append(
                BufferViewRecord(
                    index=i,
                    buffer=_as_int(bv.get("buffer"), f"bufferViews[{i}].buffer", 0),
                    byte_offset=_as_int(bv.get("byteOffset"), f"bufferViews[{i}].byteOffset", 0),
                    byte_length=byte_length,
                    byte_stride=bv.get("byteStride"),
                )
            )
        images = [
            ImageRecord(
                index=i,
                buffer_view=_as_int(img.get("bufferView"), f"images[{i}].bufferView"),
                mime_type=img.get("mimeType"),
                uri=img.get("uri"),
                name=img.get("name"),
            )
            for i, img in enumerate(_list(doc, "images"))
        ]
        textures = [
            TextureEntry(
                index=i,
                source=_as_int(tex.get("source"), f"textures[{i}].source"),
                name=tex.get("name"),
            )
            for i, tex in enumerate(_list(doc, "textures"))
        ]
        materials = [_parse_material(i, mat) for i, mat in enumerate(_list(doc, "materials"))]
        meshes = [
            MeshRecord(
                index=i,
                name=mesh.get("name"),
                primitives=[
                    PrimitiveRecord(material=prim.get("material") if isinstance(prim, dict) else None)
                    for prim in mesh.get("primitives", [])
                ],
            )
            for i, mesh in enumerate(_list(doc, "meshes"))
        ]
        nodes = [
            NodeRecord(
                index=i,
                name=node.get("name"),
                mesh=node.get("mesh"),
                children=list(node.get("children", [])),
            )
            for i, node in enumerate(_list(doc, "nodes"))
        ]
        scenes = [
            SceneRecord(index=i, name=scene.get("name"), nodes=list(scene.get("nodes", [])))
            for i, scene in enumerate(_list(doc, "scenes"))
        ]
        return cls(
            raw=doc,
            buffers=buffers,
            buffer_views=views,
            images=images,
            textures=textures,
            materials=materials,
            meshes=meshes,
            nodes=nodes,
            scenes=scenes,
            default_scene=doc.get("scene"),
        )

    def is_glb_resident(self, view: BufferViewRecord) -> bool:
        """True when the view lives in the GLB BIN chunk (buffer 0 without a uri)."""
        if view.buffer != 0 or not self.buffers:
            return False
        return self.buffers[0].uri is None

    def glb_views(self) -> List[BufferViewRecord]:
        return [bv for bv in self.buffer_views if self.is_glb_resident(bv)]

    def texture_image(self, texture_index: int) -> Optional[ImageRecord]:
        if not 0 <= texture_index < len(self.textures):
            return None
        source = self.textures[texture_index].source
        if source is None or not 0 <= source < len(self.images):
            return None
        return self.images[source]

    def validate(self, bin_length: int) -> List[str]:
        """
        Check buffer-view ranges against the binary payload.

        Out-of-range views raise MalformedContainer. Overlapping views are legal
        for reading but unusual, so they are returned as warnings.

        Args:
            bin_length: Length of the BIN chunk payload.

        Returns:
            Warning messages (possibly empty).
        """
        warnings = []
        for bv in self.buffer_views:
            if bv.buffer >= len(self.buffers):
                raise MalformedContainer(
                    f"bufferViews[{bv.index}] references missing buffer {bv.buffer}"
                )
            if self.is_glb_resident(bv) and bv.end > bin_length:
                raise MalformedContainer(
                    f"bufferViews[{bv.index}] range {bv.byte_offset}..{bv.end} "
                    f"exceeds the binary payload ({bin_length} bytes)"
                )
        for img in self.images:
            if img.buffer_view is not None and img.buffer_view >= len(self.buffer_views):
                raise MalformedContainer(
                    f"images[{img.index}] references missing bufferView {img.buffer_view}"
                )

        ordered = sorted(self.glb_views(), key=lambda v: (v.byte_offset, v.index))
        prev = None
        for bv in ordered:
            if prev is not None and bv.byte_offset < prev.end:
                warnings.append(
                    f"bufferViews[{bv.index}] overlaps bufferViews[{prev.index}] "
                    f"({bv.byte_offset} < {prev.end})"
                )
            if prev is None or bv.end > prev.end:
                prev = bv
        return warnings
