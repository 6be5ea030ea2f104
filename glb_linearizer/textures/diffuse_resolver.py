"""
Decide which textures hold color data.

Only the base-color/diffuse slot of a material in use by a rendered node
counts. Normal, metallic-roughness, occlusion, emissive and
specular-glossiness maps store non-color data and must not be gamma corrected.
"""

import logging
from typing import Dict, Iterator, List, Set

from glb_linearizer.manifest.model import Manifest, TextureSlot
from glb_linearizer.manifest.scene_graph import SceneGraph

logger = logging.getLogger(__name__)


class TextureRegistry:
    """Stable integer ids for every texture in the manifest."""

    def __init__(self, manifest: Manifest):
        self._ids: Dict[int, int] = {tex.index: tex.index for tex in manifest.textures}

    def id_for(self, texture_index: int) -> int | None:
        return self._ids.get(texture_index)

    def __len__(self) -> int:
        return len(self._ids)


class DiffuseSet:
    def __init__(self, texture_ids: Set[int], warnings: List[str] | None = None):
        self._ids = frozenset(texture_ids)
        self.warnings = warnings or []

    def is_diffuse(self, texture_index: int) -> bool:
        return texture_index in self._ids

    def __contains__(self, texture_index: object) -> bool:
        return texture_index in self._ids

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._ids))

    def __len__(self) -> int:
        return len(self._ids)


def resolve_diffuse_set(graph: SceneGraph, manifest: Manifest) -> DiffuseSet:
    """
    Walk every renderable node and collect base-color texture ids.

    Args:
        graph: Materialized scene graph of the manifest.
        manifest: Manifest providing the texture list.

    Returns:
        DiffuseSet keyed by texture index.
    """
    registry = TextureRegistry(manifest)
    diffuse: Set[int] = set()
    warnings: List[str] = []
    for renderable in graph.renderables():
        tex_index = renderable.material.texture_for(TextureSlot.BASE_COLOR)
        if tex_index is None:
            continue
        tex_id = registry.id_for(tex_index)
        if tex_id is None:
            msg = (
                f"Material '{renderable.material.name or renderable.material.index}' "
                f"references missing texture {tex_index}"
            )
            if msg not in warnings:
                warnings.append(msg)
            continue
        diffuse.add(tex_id)

    logger.debug(f"Diffuse textures: {sorted(diffuse)} of {len(registry)}")
    return DiffuseSet(diffuse, warnings)
